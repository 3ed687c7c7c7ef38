"""
Battery Charger Monitor - Charge Cycle API
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): Done & Clear endpoint
v1.0.0 (2026-10-05): Initial cycle status and config endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.deps import get_monitor
from models.charge import CycleConfig
from services.cycle_monitor import ChargeCycleMonitor

router = APIRouter()


@router.get("/status")
async def get_cycle_status(monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """State, logging flag, phase energy, SOC and latest readings"""
    return monitor.get_status()


@router.get("/config", response_model=CycleConfig)
async def get_cycle_config(monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """Configuration of the active cycle"""
    if monitor.config is None:
        raise HTTPException(status_code=404, detail="No cycle configuration set")
    return monitor.config


@router.put("/config", response_model=CycleConfig)
async def set_cycle_config(config: CycleConfig, monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """Set target voltage, capacity and controller setpoints for the cycle"""
    monitor.set_config(config)
    return config


@router.post("/clear")
async def clear_cycle(monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """Done & Clear: delete this cycle's history and reset state and phase stats"""
    result = await monitor.clear_cycle()
    return JSONResponse(status_code=200 if result.success else 500, content=result.to_response())
