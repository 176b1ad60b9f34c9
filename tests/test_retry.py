"""Tests for retry with exponential backoff."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from campussense.lib.exceptions import DeliveryError
from campussense.lib.retry import is_retryable, with_retry

logger = logging.getLogger("campussense.tests.retry")


class TestIsRetryable:
    """Tests for is_retryable."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (OSError("reset"), True),
            (TimeoutError(), True),
            (DeliveryError("rate limited", status_code=429), True),
            (DeliveryError("bad gateway", status_code=502), True),
            (DeliveryError("forbidden", status_code=403), False),
            (DeliveryError("no status"), False),
            (ValueError("bug"), False),
        ],
    )
    def test_classification(self, error, expected):
        assert is_retryable(error) is expected


class TestWithRetry:
    """Tests for with_retry."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = MagicMock()

        assert await with_retry(fn, name="job", logger=logger) is True
        fn.assert_called_once()

    @pytest.mark.asyncio
    async def test_backoff_doubles(self):
        fn = MagicMock(side_effect=[OSError("a"), OSError("b"), None])

        with patch(
            "campussense.lib.retry.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            ok = await with_retry(
                fn, name="job", logger=logger, max_retries=3, initial_backoff_sec=2.0
            )

        assert ok is True
        assert [c.args[0] for c in mock_sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, caplog):
        fn = MagicMock(side_effect=OSError("down"))

        with patch("campussense.lib.retry.asyncio.sleep", new_callable=AsyncMock):
            ok = await with_retry(fn, name="job", logger=logger, max_retries=3)

        assert ok is False
        assert fn.call_count == 3
        assert "job failed after 3 attempts" in caplog.text

    @pytest.mark.asyncio
    async def test_non_retryable_stops_immediately(self, caplog):
        fn = MagicMock(side_effect=DeliveryError("forbidden", status_code=403))

        ok = await with_retry(fn, name="job", logger=logger, max_retries=3)

        assert ok is False
        fn.assert_called_once()
        assert "non-retryable" in caplog.text

    @pytest.mark.asyncio
    async def test_async_function(self):
        fn = AsyncMock()

        assert await with_retry(fn, name="job", logger=logger) is True
        fn.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_run_in_thread(self):
        fn = MagicMock()

        assert await with_retry(fn, name="job", logger=logger, run_in_thread=True)
        fn.assert_called_once()
