"""
Battery Charger Monitor - History API
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-12): Stats include min/max/average temperature
v1.0.0 (2026-10-05): Initial latest-N history read
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List

from api.deps import get_monitor
from config import settings
from models import HISTORY_COLLECTIONS
from models.history import HistoryRecord, HistoryStats
from services.cycle_monitor import ChargeCycleMonitor
from services.history_store import StoreError

router = APIRouter()


def _check_collection(collection: str):
    if collection not in HISTORY_COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown history collection '{collection}'")


@router.get("/{collection}", response_model=List[HistoryRecord])
async def get_history(
    collection: str,
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1, le=5000),
    monitor: ChargeCycleMonitor = Depends(get_monitor)
):
    """Latest records of a collection, returned oldest-first"""
    _check_collection(collection)
    try:
        rows = await monitor.store.query_ordered(collection, limit=limit, descending=True)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to read history: {str(e)}")

    return [HistoryRecord(**row) for row in reversed(rows)]


@router.get("/{collection}/stats", response_model=HistoryStats)
async def get_history_stats(collection: str, monitor: ChargeCycleMonitor = Depends(get_monitor)):
    """Record count, oldest/newest time and temperature summary"""
    _check_collection(collection)
    try:
        return await monitor.store.stats(collection)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to read history stats: {str(e)}")
