"""Sensor reading endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from campussense.lib.db import get_latest_reading, get_metric_history
from campussense.lib.exceptions import ValidationError
from campussense.server.validators import error_response


async def get_latest_data(request: Request) -> Response:
    """Return the latest stored reading, 204 when there is none."""
    latest = await get_latest_reading()
    if latest is None:
        return Response(status_code=204)
    return JSONResponse(latest)


async def get_graph_data(request: Request) -> JSONResponse:
    """Return one metric's time series for a named range."""
    metric = request.query_params.get("metric", "")
    range_name = request.query_params.get("range", "24h")
    try:
        points = await get_metric_history(metric, range_name)
    except ValidationError as e:
        return error_response(e)
    return JSONResponse(
        {"metric": metric, "range": range_name, "points": points}
    )
