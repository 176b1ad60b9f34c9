"""Request validation shared by the API endpoints."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from campussense.lib.exceptions import ValidationError as SettingsValidationError


class InvalidRequest(Exception):
    """Raised when a request body or query parameter is invalid."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class InvalidJSON(InvalidRequest):
    def __init__(self) -> None:
        super().__init__(["Invalid JSON"])


def format_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(x) for x in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    ]


async def parse_body[M: BaseModel](request: Request, model: type[M]) -> M:
    """Parse and validate a JSON request body.

    Raises:
        InvalidRequest: On malformed JSON or a body that fails validation.
    """
    try:
        raw_data = await request.json()
    except ValueError:
        raise InvalidJSON() from None
    try:
        return model.model_validate(raw_data)
    except ValidationError as e:
        raise InvalidRequest(format_errors(e)) from None


def error_response(error: InvalidRequest | SettingsValidationError) -> JSONResponse:
    """Render a 400 response for a rejected request."""
    if isinstance(error, InvalidRequest):
        if isinstance(error, InvalidJSON):
            return JSONResponse({"error": "Invalid JSON"}, status_code=400)
        return JSONResponse({"errors": error.errors}, status_code=400)
    return JSONResponse({"error": str(error)}, status_code=400)


class ThresholdsRequest(BaseModel):
    """Limits for every alertable metric; humidity is optional."""

    model_config = ConfigDict(allow_inf_nan=False)

    aqi: float
    uv: float
    bmp_temp: float
    pressure: float
    rain_percentage: float
    humidity: float | None = Field(
        default=None,
        validation_alias=AliasChoices("humidity", "humidity_threshold"),
    )

    def limits(self) -> dict[str, float]:
        return self.model_dump(exclude_none=True)


class PreferencesRequest(BaseModel):
    """Notification preferences; the alert window is optional."""

    report_times: list[str] | str = []
    alert_rate: str | None = Field(
        default=None, validation_alias=AliasChoices("alert_rate", "rate")
    )
    timezone: str | None = None
    notify_start_time: str | None = Field(
        default=None,
        validation_alias=AliasChoices("notify_start_time", "window_start"),
    )
    notify_end_time: str | None = Field(
        default=None,
        validation_alias=AliasChoices("notify_end_time", "window_end"),
    )
    notification_enabled: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("notification_enabled", "enabled"),
    )


class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionRequest(BaseModel):
    """Browser PushSubscription.toJSON() payload."""

    endpoint: str = Field(min_length=1, pattern=r"^https://")
    keys: PushKeys


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(min_length=1)


def parse_limit(params: Any, default: int | None = None) -> int | None:
    """Parse an optional integer ``limit`` query parameter.

    Raises:
        InvalidRequest: If the value is not an integer.
    """
    raw = params.get("limit")
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidRequest(["limit: must be an integer"]) from None
