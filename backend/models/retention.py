"""
Battery Charger Monitor - Retention Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Partial-failure flag and serving location on results
v1.0.0 (2026-10-05): Initial retention request/result models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, Dict, Any
from enum import Enum

from timestamps import MAX_MS

# Keeps LIMIT binds inside SQLite integers
MAX_DELETE_COUNT = 1_000_000_000


class RetentionMode(str, Enum):
    """How the candidate set is selected"""
    COUNT = "count"
    AGE = "age"


class RetentionRequest(BaseModel):
    """Cleanup request: N oldest records, or everything older than a window"""
    model_config = ConfigDict(populate_by_name=True)

    mode: RetentionMode = Field(..., description="'count' or 'age'")
    delete_count: Optional[int] = Field(None, le=MAX_DELETE_COUNT, alias="deleteCount", description="Oldest records to delete (count mode)")
    older_than_ms: Optional[int] = Field(None, le=MAX_MS, alias="olderThanMs", description="Age window in ms (age mode)")

    @model_validator(mode="after")
    def _check_mode_parameters(self):
        if self.mode == RetentionMode.COUNT:
            if self.delete_count is None or self.delete_count <= 0:
                raise ValueError("count mode requires a positive deleteCount")
        elif self.older_than_ms is None or self.older_than_ms <= 0:
            raise ValueError("age mode requires a positive olderThanMs")
        return self

    @classmethod
    def count(cls, delete_count: int) -> "RetentionRequest":
        return cls(mode=RetentionMode.COUNT, delete_count=delete_count)

    @classmethod
    def age(cls, older_than_ms: int) -> "RetentionRequest":
        return cls(mode=RetentionMode.AGE, older_than_ms=older_than_ms)


class RetentionResult(BaseModel):
    """Outcome of one retention pass"""
    success: bool
    deleted_count: int = 0
    message: str = ""
    error: Optional[str] = None
    partial: bool = Field(False, description="Some batches committed before a failure")
    location: Optional[str] = Field(None, description="Store location that served the candidate read")
    encoding: Optional[str] = Field(None, description="Timestamp encoding that matched (age mode)")

    def to_response(self) -> Dict[str, Any]:
        """Wire shape returned by the cleanup endpoint"""
        body = {
            "success": self.success,
            "deleted": self.deleted_count,
            "message": self.message,
            "partial": self.partial,
            "location": self.location,
        }
        if self.error:
            body["error"] = self.error
        return body
