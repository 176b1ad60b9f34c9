"""In-app notification endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse

from campussense.lib.db import get_notifications, mark_notification_read
from campussense.server.validators import InvalidRequest, error_response, parse_limit


async def list_notifications(request: Request) -> JSONResponse:
    """Return recent notifications, newest first (limit clamped to 1..200)."""
    try:
        limit = parse_limit(request.query_params)
    except InvalidRequest as e:
        return error_response(e)
    unread_only = request.query_params.get("unread") in ("1", "true")
    return JSONResponse(await get_notifications(limit, unread_only=unread_only))


async def mark_read(request: Request) -> JSONResponse:
    """Mark a notification as read."""
    notification_id = request.path_params["notification_id"]
    if not await mark_notification_read(notification_id):
        return JSONResponse({"error": "Notification not found"}, status_code=404)
    return JSONResponse({"ok": True})
