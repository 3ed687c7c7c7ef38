"""
Battery Charger Monitor - Sample Ingest API
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Non-blocking enqueue; malformed fields coerced, not rejected
v1.0.0 (2026-10-05): Initial push endpoints for the ingest adapter
"""

from fastapi import APIRouter, Body, Depends
from typing import Any, Dict

from api.deps import get_monitor
from services.cycle_monitor import ChargeCycleMonitor

router = APIRouter()


@router.post("/charger", status_code=202)
async def push_charger_sample(
    payload: Dict[str, Any] = Body(...),
    monitor: ChargeCycleMonitor = Depends(get_monitor)
):
    """
    Push one charger sample: {voltage, current, state, timestamp}
    Missing or non-numeric values become 0.0, a missing state "Unknown".
    """
    accepted = monitor.submit_charger(payload)
    return {"accepted": accepted}


@router.post("/temperature", status_code=202)
async def push_temperature_sample(
    payload: Dict[str, Any] = Body(...),
    monitor: ChargeCycleMonitor = Depends(get_monitor)
):
    """Push one temperature sample: {celsius, fahrenheit, timestamp}"""
    accepted = monitor.submit_temperature(payload)
    return {"accepted": accepted}
