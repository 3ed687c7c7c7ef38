"""
Battery Charger Monitor - SOC Estimator
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-12): Empty floor is a setting (SOC_MIN_VOLTAGE_V), overridable per cycle
v1.0.0 (2026-10-05): Initial linear voltage-to-SOC estimate
"""

from typing import Optional

from config import settings


def estimate_soc(voltage_v: float, target_voltage_v: float,
                 min_voltage_v: Optional[float] = None) -> float:
    """
    Linear state-of-charge estimate from the latest voltage

    Args:
        voltage_v: Latest battery voltage in V
        target_voltage_v: Configured full-charge voltage in V
        min_voltage_v: Empty floor in V (defaults to settings.SOC_MIN_VOLTAGE_V)

    Returns:
        SOC percentage clamped to [0, 100]

    Raises:
        ValueError: If the target is not above the floor
    """
    v_min = settings.SOC_MIN_VOLTAGE_V if min_voltage_v is None else min_voltage_v
    span = target_voltage_v - v_min
    if span <= 0:
        raise ValueError(f"Target voltage {target_voltage_v}V must exceed floor {v_min}V")

    soc = (voltage_v - v_min) / span * 100.0
    return max(0.0, min(100.0, soc))
