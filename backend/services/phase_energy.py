"""
Battery Charger Monitor - Phase Energy Accumulator
Version: 1.1.1

Changelog:
v1.1.1 (2026-10-19): Closed phases take no energy from re-entered samples
v1.1.0 (2026-10-12): Trans merged into the cc phase; temperature average skips
                      ticks before the first temperature reading
v1.0.0 (2026-10-05): Initial Wh integration per charge phase

Integrates V*I over the nominal sample cadence into per-phase energy.
The cadence is a configured constant (settings.SAMPLE_INTERVAL_S), not the
measured gap between samples.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import settings
from models.charge import Phase

logger = logging.getLogger(__name__)


@dataclass
class PhaseStats:
    """Accumulated figures for one charge phase"""
    phase: Phase
    energy_wh: float = 0.0
    start_time: Optional[int] = None   # epoch ms
    end_time: Optional[int] = None     # epoch ms, fixed on exit
    duration_sec: Optional[float] = None
    temp_sum: float = 0.0
    temp_count: int = 0
    voltage_readings: List[float] = field(default_factory=list)
    current_readings: List[float] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.start_time is not None and self.end_time is None

    @property
    def avg_temp_c(self) -> Optional[float]:
        if self.temp_count == 0:
            return None
        return self.temp_sum / self.temp_count

    def summary(self, now_ms: Optional[int] = None) -> Dict:
        """Display view; an open phase reports its running duration"""
        duration = self.duration_sec
        if self.is_open and now_ms is not None:
            duration = (now_ms - self.start_time) / 1000
        return {
            "phase": self.phase.value,
            "energy_wh": self.energy_wh,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_sec": duration,
            "avg_temp_c": self.avg_temp_c,
            "samples": len(self.voltage_readings),
            "open": self.is_open,
        }


class PhaseEnergyAccumulator:
    """Per-phase energy, duration and temperature for one charging cycle"""

    def __init__(self, sample_interval_s: Optional[float] = None):
        interval = sample_interval_s if sample_interval_s is not None else settings.SAMPLE_INTERVAL_S
        if interval <= 0:
            raise ValueError(f"Sample interval must be positive: {interval}")
        self.sample_interval_s = interval
        self.stats: Dict[Phase, PhaseStats] = {}

    @property
    def dt_hours(self) -> float:
        return self.sample_interval_s / 3600.0

    @property
    def open_phase(self) -> Optional[PhaseStats]:
        for stats in self.stats.values():
            if stats.is_open:
                return stats
        return None

    @property
    def total_energy_wh(self) -> float:
        return sum(stats.energy_wh for stats in self.stats.values())

    def get(self, phase: Phase) -> Optional[PhaseStats]:
        return self.stats.get(phase)

    def switch_phase(self, previous: Phase, new: Phase, now_ms: int):
        """Close the previous phase if open, open the new one on first entry"""
        if previous == new:
            return

        closing = self.stats.get(previous)
        if closing is not None and closing.is_open:
            closing.end_time = now_ms
            closing.duration_sec = (closing.end_time - closing.start_time) / 1000
            logger.info(f"Phase {previous.value} closed: {closing.energy_wh:.4f} Wh "
                        f"over {closing.duration_sec:.0f}s")

        if new == Phase.NONE:
            return

        opening = self.stats.setdefault(new, PhaseStats(phase=new))
        if opening.start_time is None:
            opening.start_time = now_ms
            logger.info(f"Phase {new.value} opened")
        else:
            logger.warning(f"Phase {new.value} re-entered after it was closed; "
                           f"its samples are not integrated")

    def add_sample(self, phase: Phase, voltage: float, current: float,
                   celsius: Optional[float] = None) -> float:
        """
        Integrate one charger sample into its phase

        A phase that was opened and has since closed takes no more energy;
        re-entered samples after the close are skipped.

        Args:
            phase: Derived phase of the sample (NONE is ignored)
            voltage: Battery voltage in V
            current: Charge current in A
            celsius: Latest temperature, None if none received yet

        Returns:
            Energy increment in Wh
        """
        if phase == Phase.NONE:
            return 0.0

        stats = self.stats.setdefault(phase, PhaseStats(phase=phase))
        if stats.end_time is not None:
            return 0.0

        increment = voltage * current * self.dt_hours
        stats.energy_wh += increment
        stats.voltage_readings.append(voltage)
        stats.current_readings.append(current)

        if celsius is not None:
            stats.temp_sum += celsius
            stats.temp_count += 1

        return increment

    def reset(self):
        self.stats = {}

    def snapshot(self, now_ms: Optional[int] = None) -> Dict:
        phases = {}
        for phase in (Phase.CC, Phase.CV):
            stats = self.stats.get(phase)
            phases[phase.value] = stats.summary(now_ms) if stats else None
        return {
            "phases": phases,
            "total_energy_wh": self.total_energy_wh,
        }
