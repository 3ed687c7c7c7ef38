"""
Battery Charger Monitor - Cleanup (Retention) API
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Age mode; partial failures reported with deleted count
v1.0.0 (2026-10-05): Initial oldest-N cleanup endpoint
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.deps import get_monitor
from models.retention import RetentionRequest
from services.cycle_monitor import ChargeCycleMonitor

router = APIRouter()
logger = logging.getLogger(__name__)


def _client_error(error: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "deleted": 0, "message": "Invalid cleanup request", "error": error}
    )


@router.post("")
async def cleanup(request: Request, monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """
    Delete the oldest history records
    - {"mode": "count", "deleteCount": N}: the N oldest records
    - {"mode": "age", "olderThanMs": MS}: every record older than now - MS
    Invalid or missing parameters return 400 without touching the store.
    """
    try:
        body = await request.json()
    except ValueError:
        return _client_error("Request body must be JSON")
    if not isinstance(body, dict):
        return _client_error("Request body must be a JSON object")

    try:
        retention_request = RetentionRequest.model_validate(body)
    except ValidationError as e:
        details = "; ".join(err["msg"] for err in e.errors())
        return _client_error(details)

    result = await monitor.run_retention(retention_request)
    if not result.success:
        logger.error(f"Cleanup failed: {result.error}")
    return JSONResponse(status_code=200 if result.success else 500, content=result.to_response())
