"""Tests for request validation helpers."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from campussense.lib.exceptions import ValidationError
from campussense.server.validators import (
    InvalidJSON,
    InvalidRequest,
    PreferencesRequest,
    ThresholdsRequest,
    error_response,
    parse_body,
    parse_limit,
)


def make_request(body):
    request = MagicMock()
    request.json = AsyncMock(return_value=body)
    return request


class TestParseBody:
    """Tests for parse_body."""

    @pytest.mark.asyncio
    async def test_valid_body(self):
        body = {"aqi": 1, "uv": 2, "bmp_temp": 3, "pressure": 4, "rain_percentage": 5}

        data = await parse_body(make_request(body), ThresholdsRequest)

        assert data.limits() == {
            "aqi": 1.0,
            "uv": 2.0,
            "bmp_temp": 3.0,
            "pressure": 4.0,
            "rain_percentage": 5.0,
        }

    @pytest.mark.asyncio
    async def test_non_finite_rejected(self):
        body = {
            "aqi": float("nan"),
            "uv": 2,
            "bmp_temp": 3,
            "pressure": 4,
            "rain_percentage": 5,
        }

        with pytest.raises(InvalidRequest) as exc_info:
            await parse_body(make_request(body), ThresholdsRequest)

        assert exc_info.value.errors[0].startswith("aqi:")

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        with pytest.raises(InvalidRequest) as exc_info:
            await parse_body(make_request(["09:00"]), PreferencesRequest)

        assert exc_info.value.errors[0].startswith("body:")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        request = MagicMock()
        request.json = AsyncMock(side_effect=json.JSONDecodeError("bad", "", 0))

        with pytest.raises(InvalidJSON):
            await parse_body(request, PreferencesRequest)

    def test_preference_aliases(self):
        data = PreferencesRequest.model_validate(
            {
                "report_times": ["09:00"],
                "rate": "hourly",
                "window_start": "08:00",
                "window_end": "20:00",
                "enabled": True,
            }
        )

        assert data.alert_rate == "hourly"
        assert data.notify_start_time == "08:00"
        assert data.notify_end_time == "20:00"
        assert data.notification_enabled is True


class TestErrorResponse:
    """Tests for error_response."""

    def test_invalid_json(self):
        response = error_response(InvalidJSON())

        assert response.status_code == 400
        assert json.loads(response.body) == {"error": "Invalid JSON"}

    def test_field_errors(self):
        response = error_response(InvalidRequest(["aqi: Field required"]))

        assert json.loads(response.body) == {"errors": ["aqi: Field required"]}

    def test_domain_validation_error(self):
        response = error_response(ValidationError("Unknown timezone: Mars"))

        assert json.loads(response.body) == {"error": "Unknown timezone: Mars"}


class TestParseLimit:
    """Tests for parse_limit."""

    def test_missing_uses_default(self):
        assert parse_limit({}) is None
        assert parse_limit({"limit": ""}, default=10) == 10

    def test_integer(self):
        assert parse_limit({"limit": "25"}) == 25

    def test_not_an_integer(self):
        with pytest.raises(InvalidRequest, match="limit"):
            parse_limit({"limit": "2.5"})
