"""
Battery Charger Monitor - Timestamp Encoding Helpers
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Structured (ISO-8601 text) encoding for store timestamps
v1.0.0 (2026-10-05): Initial timestamp parser and display formatter

NOTE ON ENCODINGS:
  History rows carry their timestamp in one of two physical encodings:
    - epoch_ms:   INTEGER epoch milliseconds (what the ingest adapter writes)
    - structured: TEXT "YYYY-MM-DDTHH:MM:SS.mmmZ" (UTC, fixed width)
  Both sort correctly within their own encoding but never compare
  meaningfully against each other, which is why retention has to retry
  an age filter with the alternate encoding.
"""

import logging
import math
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

STRUCTURED_FORMAT = "%Y-%m-%dT%H:%M:%S"
DISPLAY_FORMAT = "%d %b %Y %H:%M:%S"

# Digit strings this long or longer are already milliseconds
MS_DIGITS = 13

# Range both encodings can hold: 1970-01-01 .. 9999-12-31T23:59:59.999Z
MIN_MS = 0
MAX_MS = 253402300799999


class TimestampEncoding(str, Enum):
    """Physical encoding of a stored timestamp"""
    EPOCH_MS = "epoch_ms"
    STRUCTURED = "structured"

    def alternate(self) -> "TimestampEncoding":
        if self is TimestampEncoding.EPOCH_MS:
            return TimestampEncoding.STRUCTURED
        return TimestampEncoding.EPOCH_MS


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


def in_range(timestamp_ms: int) -> bool:
    return MIN_MS <= timestamp_ms <= MAX_MS


def clamp_ms(timestamp_ms: int) -> int:
    """Pin a filter bound into the range both encodings can represent"""
    return max(MIN_MS, min(MAX_MS, int(timestamp_ms)))


def _digits_to_ms(text: str) -> int:
    value = int(text, 10)
    return value if len(text) >= MS_DIGITS else value * 1000


def parse_timestamp(raw: Any) -> Optional[int]:
    """
    Parse any timestamp shape the adapter or store produces into epoch ms

    Accepts:
        - int/float epoch milliseconds
        - digit strings (13+ digits = ms, shorter = seconds)
        - ISO-8601 strings (naive values are taken as UTC)
        - {"integerValue": ...}, {"doubleValue": ...}
        - {"seconds": ..., "nanoseconds": ...}

    Returns:
        Epoch milliseconds, or None if the value is not a timestamp
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        return int(raw)

    if isinstance(raw, str):
        text = raw.strip()
        if text.isdigit():
            return _digits_to_ms(text)
        return from_structured(text)

    if isinstance(raw, dict):
        if raw.get("integerValue") is not None:
            text = str(raw["integerValue"]).strip()
            return _digits_to_ms(text) if text.isdigit() else None
        if raw.get("doubleValue") is not None:
            try:
                value = float(raw["doubleValue"])
            except (TypeError, ValueError):
                return None
            return int(value) if math.isfinite(value) else None
        if raw.get("seconds") is not None:
            try:
                seconds = int(raw["seconds"])
                nanos = int(raw.get("nanoseconds") or 0)
            except (TypeError, ValueError):
                return None
            return seconds * 1000 + nanos // 1_000_000

    return None


def to_structured(timestamp_ms: int) -> str:
    """Encode epoch ms as fixed-width UTC ISO-8601 text"""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return f"{dt.strftime(STRUCTURED_FORMAT)}.{timestamp_ms % 1000:03d}Z"


def from_structured(text: str) -> Optional[int]:
    """Decode ISO-8601 text into epoch ms, None if unparseable"""
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(round(dt.timestamp() * 1000))


def encode_timestamp(timestamp_ms: int, encoding: TimestampEncoding):
    """Encode epoch ms for storage in the given physical encoding"""
    if encoding == TimestampEncoding.STRUCTURED:
        return to_structured(timestamp_ms)
    return int(timestamp_ms)


def _display_zone(tz_name: str):
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown display timezone '{tz_name}', using UTC")
        return timezone.utc


def format_timestamp(timestamp_ms: Optional[int], tz_name: str = "UTC") -> str:
    """Human-readable local time for a record, "—" when missing"""
    if timestamp_ms is None:
        return "—"
    try:
        dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=_display_zone(tz_name))
    except (ValueError, OverflowError, OSError):
        logger.warning(f"Timestamp {timestamp_ms} outside the displayable range")
        return "—"
    return dt.strftime(DISPLAY_FORMAT)
