"""
Battery Charger Monitor - API Dependencies
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-05): Monitor lookup from app.state
"""

from fastapi import HTTPException, Request

from services.cycle_monitor import ChargeCycleMonitor


def get_monitor(request: Request) -> ChargeCycleMonitor:
    """The rig's ChargeCycleMonitor, created in the app lifespan"""
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        raise HTTPException(status_code=503, detail="Charge cycle monitor not running")
    return monitor
