"""Web push subscription endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse

from campussense.lib.config import get_settings
from campussense.lib.db import add_push_subscription, remove_push_subscription
from campussense.logging import get_logger
from campussense.server.validators import (
    InvalidRequest,
    PushSubscriptionRequest,
    PushUnsubscribeRequest,
    error_response,
    parse_body,
)

logger = get_logger("server.api.push")


async def get_public_key(request: Request) -> JSONResponse:
    """Return the VAPID public key browsers subscribe with."""
    push = get_settings().push
    if not push.public_key:
        return JSONResponse(
            {"error": "Web push is not configured"}, status_code=404
        )
    return JSONResponse({"publicKey": push.public_key})


async def subscribe(request: Request) -> JSONResponse:
    """Store a browser push subscription."""
    try:
        data = await parse_body(request, PushSubscriptionRequest)
    except InvalidRequest as e:
        return error_response(e)
    await add_push_subscription(data.endpoint, data.keys.p256dh, data.keys.auth)
    logger.info("Push subscription added")
    return JSONResponse({"ok": True}, status_code=201)


async def unsubscribe(request: Request) -> JSONResponse:
    """Remove a browser push subscription."""
    try:
        data = await parse_body(request, PushUnsubscribeRequest)
    except InvalidRequest as e:
        return error_response(e)
    removed = await remove_push_subscription(data.endpoint)
    return JSONResponse({"ok": True, "removed": removed})
