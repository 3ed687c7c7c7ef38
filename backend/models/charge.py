"""
Battery Charger Monitor - Charger Sample Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): CycleConfig carries optional per-cycle SOC floor
v1.0.0 (2026-10-05): Initial sample models and charge state normalization
"""

import logging
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from timestamps import in_range, parse_timestamp

logger = logging.getLogger(__name__)


class ChargeState(str, Enum):
    """Charger controller states reported by the rig"""
    IDLE = "Idle"
    DETECT = "Detect"
    CC = "CC"
    TRANS = "Trans"
    CV = "CV"
    DONE = "Done"
    WAIT_CFG = "WaitCfg"
    UNKNOWN = "Unknown"


class Phase(str, Enum):
    """Energy accounting phase derived from the charge state"""
    CC = "cc"
    CV = "cv"
    NONE = "none"


_STATE_LOOKUP = {
    "idle": ChargeState.IDLE,
    "detect": ChargeState.DETECT,
    "cc": ChargeState.CC,
    "trans": ChargeState.TRANS,
    "cv": ChargeState.CV,
    "done": ChargeState.DONE,
    "waitcfg": ChargeState.WAIT_CFG,
}


def normalize_state(raw: Any) -> ChargeState:
    """
    Map a raw charger state string onto ChargeState

    Case-insensitive; spaces, dashes and underscores are ignored so
    "WAIT_CFG", "wait cfg" and "WaitCfg" all match. Anything else,
    including non-strings, is UNKNOWN.
    """
    if not isinstance(raw, str):
        return ChargeState.UNKNOWN
    key = raw.strip().lower()
    for sep in (" ", "_", "-"):
        key = key.replace(sep, "")
    return _STATE_LOOKUP.get(key, ChargeState.UNKNOWN)


def derive_phase(state: ChargeState) -> Phase:
    """CC and Trans share the cc phase; CV is cv; everything else has none"""
    if state in (ChargeState.CC, ChargeState.TRANS):
        return Phase.CC
    if state == ChargeState.CV:
        return Phase.CV
    return Phase.NONE


def _coerce_float(value: Any) -> Tuple[float, bool]:
    """Return (number, was_coerced); missing or non-numeric becomes 0.0"""
    if isinstance(value, bool):
        return 0.0, True
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0, True
    if not math.isfinite(number):
        return 0.0, True
    return number, False


def _coerce_fields(payload: Dict[str, Any], names: List[str]) -> Tuple[Dict[str, float], List[str]]:
    values = {}
    coerced = []
    for name in names:
        values[name], bad = _coerce_float(payload.get(name))
        if bad:
            coerced.append(name)
    return values, coerced


def _coerce_timestamp(payload: Dict[str, Any], received_ms: int, coerced: List[str]) -> int:
    """Sample time, or the receive time when absent or outside the storable range"""
    raw = payload.get("timestamp")
    timestamp_ms = parse_timestamp(raw)
    if timestamp_ms is None or not in_range(timestamp_ms):
        if raw is not None:
            coerced.append("timestamp")
        return received_ms
    return timestamp_ms


class ChargerSample(BaseModel):
    """One reading from the charger stream"""
    model_config = ConfigDict(frozen=True)

    voltage: float = Field(0.0, description="Battery voltage in V")
    current: float = Field(0.0, description="Charge current in A")
    state: str = Field("Unknown", description="Raw charger state string")
    timestamp_ms: int = Field(..., description="Sample time, epoch ms")

    @property
    def charge_state(self) -> ChargeState:
        return normalize_state(self.state)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], received_ms: int) -> "ChargerSample":
        """Build a sample from an adapter payload, coercing malformed fields"""
        payload = payload or {}
        values, coerced = _coerce_fields(payload, ["voltage", "current"])

        state = payload.get("state")
        if not isinstance(state, str) or not state.strip():
            coerced.append("state")
            state = "Unknown"

        timestamp_ms = _coerce_timestamp(payload, received_ms, coerced)

        if coerced:
            logger.info(f"Malformed charger sample, coerced fields: {', '.join(coerced)}")

        return cls(state=state, timestamp_ms=timestamp_ms, **values)


class TemperatureSample(BaseModel):
    """One reading from the temperature stream"""
    model_config = ConfigDict(frozen=True)

    celsius: float = Field(0.0, description="Temperature in °C")
    fahrenheit: float = Field(0.0, description="Temperature in °F")
    timestamp_ms: int = Field(..., description="Sample time, epoch ms")

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], received_ms: int) -> "TemperatureSample":
        """Build a sample from an adapter payload, coercing malformed fields"""
        payload = payload or {}
        values, coerced = _coerce_fields(payload, ["celsius", "fahrenheit"])

        timestamp_ms = _coerce_timestamp(payload, received_ms, coerced)

        if coerced:
            logger.info(f"Malformed temperature sample, coerced fields: {', '.join(coerced)}")

        return cls(timestamp_ms=timestamp_ms, **values)


class CycleConfig(BaseModel):
    """Per-cycle charger configuration from the config screen"""
    model_config = ConfigDict(populate_by_name=True)

    target_voltage_v: float = Field(..., gt=0, alias="targetVoltageV", description="Target (full) voltage in V")
    battery_capacity_mah: int = Field(..., gt=0, alias="batteryCapacityMah", description="Battery capacity in mAh")
    vref: float = Field(..., ge=0, description="Voltage setpoint for the controller in V")
    iref: float = Field(..., ge=0, description="Current setpoint for the controller in A")
    min_voltage_v: Optional[float] = Field(None, ge=0, alias="minVoltageV", description="SOC empty floor override in V")

    @model_validator(mode="after")
    def _check_soc_span(self):
        if self.min_voltage_v is not None and self.min_voltage_v >= self.target_voltage_v:
            raise ValueError("minVoltageV must be below targetVoltageV")
        return self
