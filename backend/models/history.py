"""
Battery Charger Monitor - History Record Models
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-05): Initial history record and stats models
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class HistoryRecord(BaseModel):
    """A persisted sample as read back from the history store"""
    id: str = Field(..., description="Opaque store id '<collection>/<rowid>'")
    collection: str = Field(..., description="History collection name")
    timestamp_ms: Optional[int] = Field(None, description="Sample time, epoch ms")
    formatted_time: Optional[str] = Field(None, description="Display time in the configured timezone")
    fields: Dict[str, Any] = Field(default_factory=dict, description="Sample value fields")


class HistoryStats(BaseModel):
    """Summary of a history collection"""
    collection: str
    total: int = 0
    oldest_ms: Optional[int] = None
    newest_ms: Optional[int] = None
    oldest_time: Optional[str] = None
    newest_time: Optional[str] = None

    # Temperature collection only
    min_celsius: Optional[float] = None
    max_celsius: Optional[float] = None
    avg_celsius: Optional[float] = None
