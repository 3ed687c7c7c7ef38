"""
Battery Charger Monitor - Admin API
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Health covers history store, logging gate and consumer loops
v1.0.0 (2026-10-05): Initial system info and health endpoints
"""

from fastapi import APIRouter, Depends

from api.deps import get_monitor
from config import settings
from models import HISTORY_COLLECTIONS, HISTORY_GROUP
from services.cycle_monitor import ChargeCycleMonitor
from services.history_store import StoreError

router = APIRouter()


# System Information

@router.get("/system/info")
async def system_info():
    """Get system information"""
    import platform
    import psutil

    return {
        "platform": platform.platform(),
        "python_version": platform.python_version(),
        "cpu_count": psutil.cpu_count(),
        "memory_total_gb": round(psutil.virtual_memory().total / (1024**3), 2),
        "memory_available_gb": round(psutil.virtual_memory().available / (1024**3), 2),
        "disk_usage_percent": psutil.disk_usage('/').percent,
        "app_version": settings.APP_VERSION
    }


@router.get("/system/health")
async def system_health(monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """Comprehensive system health check"""
    health = {
        "overall": "healthy",
        "services": {}
    }

    # Consumer loops and history writers
    gate_status = monitor.gate.get_status()
    health["services"]["cycle_monitor"] = {
        "status": "healthy" if monitor.running else "stopped",
        "state": monitor.state_machine.context.current_state.value,
        "logging_active": monitor.state_machine.logging_active,
    }
    health["services"]["logging_gate"] = {
        "status": "healthy" if gate_status["running"] else "stopped",
        "failed": gate_status["failed"],
        "dropped": gate_status["dropped"],
    }
    if not monitor.running or not gate_status["running"]:
        health["overall"] = "degraded"

    # History store
    try:
        counts = {name: await monitor.store.count(name) for name in HISTORY_COLLECTIONS}
        counts[HISTORY_GROUP] = sum(counts.values())
        health["services"]["history_store"] = {
            "status": "healthy",
            "encoding": monitor.store.encoding.value,
            "records": counts,
        }
    except StoreError as e:
        health["services"]["history_store"] = {"status": "error", "error": str(e)}
        health["overall"] = "degraded"

    return health
