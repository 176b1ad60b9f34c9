"""Retry utilities with exponential backoff."""
import asyncio
import inspect
from collections.abc import Awaitable, Callable
from logging import Logger

from campussense.lib.exceptions import DeliveryError

# Status codes worth another attempt (rate limited or server-side failures)
_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def is_retryable(error: Exception) -> bool:
    """Return True for transient failures: network errors and 429/5xx replies."""
    if isinstance(error, DeliveryError):
        return error.status_code in _RETRYABLE_STATUS
    return isinstance(error, OSError)


async def with_retry(
    fn: Callable[[], None] | Callable[[], Awaitable[None]],
    *,
    name: str,
    logger: Logger,
    max_retries: int = 3,
    initial_backoff_sec: float = 2.0,
    retryable: Callable[[Exception], bool] = is_retryable,
    run_in_thread: bool = False,
) -> bool:
    """Execute a function with retry logic and exponential backoff.

    Args:
        fn: The function to execute. Can be sync or async.
        name: Name for logging purposes.
        logger: Logger instance to use.
        max_retries: Maximum number of attempts.
        initial_backoff_sec: Initial backoff delay in seconds (doubles each retry).
        retryable: Predicate deciding whether a failure triggers a retry.
        run_in_thread: If True, run sync fn in a thread pool.

    Returns:
        True if the function succeeded, False otherwise. Failures are
        logged, never raised.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            if run_in_thread:
                await asyncio.to_thread(fn)
            elif inspect.iscoroutinefunction(fn):
                await fn()
            else:
                fn()
            return True
        except Exception as e:
            if not retryable(e):
                logger.error("%s failed (non-retryable): %s", name, e)
                return False
            last_error = e
            if attempt + 1 == max_retries:
                break
            backoff = initial_backoff_sec * (2**attempt)
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %gs...",
                name,
                attempt + 1,
                max_retries,
                e,
                backoff,
            )
            await asyncio.sleep(backoff)

    logger.error(
        "%s failed after %d attempts. Last error: %s",
        name,
        max_retries,
        last_error,
    )
    return False
