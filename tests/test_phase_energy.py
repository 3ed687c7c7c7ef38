"""Test per-phase energy integration and the SOC estimate."""

import pytest

from models.charge import Phase
from services.phase_energy import PhaseEnergyAccumulator
from services.soc import estimate_soc


class TestPhaseEnergy:
    """Wh integration at the nominal 1 s cadence."""

    def test_energy_is_sum_of_v_times_i_over_3600(self, phases):
        samples = [(4.0, 1.0), (4.1, 0.9), (4.15, 0.95)]
        phases.switch_phase(Phase.NONE, Phase.CC, 0)
        for voltage, current in samples:
            phases.add_sample(Phase.CC, voltage, current)

        expected = sum(v * i for v, i in samples) / 3600
        assert phases.get(Phase.CC).energy_wh == pytest.approx(expected)

    def test_cc_and_cv_accumulate_separately(self, phases):
        phases.switch_phase(Phase.NONE, Phase.CC, 0)
        phases.add_sample(Phase.CC, 3.6, 1.0)
        phases.switch_phase(Phase.CC, Phase.CV, 1000)
        phases.add_sample(Phase.CV, 4.2, 0.5)
        phases.add_sample(Phase.CV, 4.2, 0.3)

        assert phases.get(Phase.CC).energy_wh == pytest.approx(3.6 / 3600)
        assert phases.get(Phase.CV).energy_wh == pytest.approx(4.2 * 0.8 / 3600)
        assert phases.total_energy_wh == pytest.approx((3.6 + 4.2 * 0.8) / 3600)

    def test_none_phase_is_ignored(self, phases):
        assert phases.add_sample(Phase.NONE, 4.0, 1.0) == 0.0
        assert phases.total_energy_wh == 0.0

    def test_custom_interval(self):
        phases = PhaseEnergyAccumulator(sample_interval_s=2.0)
        phases.add_sample(Phase.CC, 3.6, 1.0)

        assert phases.get(Phase.CC).energy_wh == pytest.approx(3.6 * 2 / 3600)

    def test_invalid_interval_rejected(self):
        with pytest.raises(ValueError):
            PhaseEnergyAccumulator(sample_interval_s=0)

    def test_closed_phase_is_not_reopened(self, phases):
        phases.switch_phase(Phase.NONE, Phase.CC, 0)
        phases.switch_phase(Phase.CC, Phase.CV, 1000)
        phases.switch_phase(Phase.CV, Phase.CC, 2000)

        cc = phases.get(Phase.CC)
        assert cc.start_time == 0
        assert cc.end_time == 1000
        assert not cc.is_open

    def test_reentered_phase_takes_no_energy(self, phases):
        phases.switch_phase(Phase.NONE, Phase.CC, 0)
        phases.add_sample(Phase.CC, 4.0, 1.0)
        phases.switch_phase(Phase.CC, Phase.CV, 1000)
        phases.switch_phase(Phase.CV, Phase.CC, 2000)

        assert phases.add_sample(Phase.CC, 4.0, 1.0) == 0.0
        assert phases.get(Phase.CC).energy_wh == pytest.approx(4.0 / 3600)
        assert len(phases.get(Phase.CC).voltage_readings) == 1

    def test_temperature_average_skips_missing_readings(self, phases):
        phases.add_sample(Phase.CC, 4.0, 1.0)
        phases.add_sample(Phase.CC, 4.0, 1.0, celsius=30.0)
        phases.add_sample(Phase.CC, 4.0, 1.0, celsius=32.0)

        assert phases.get(Phase.CC).avg_temp_c == pytest.approx(31.0)

    def test_open_phase_reports_running_duration(self, phases):
        phases.switch_phase(Phase.NONE, Phase.CV, 10_000)
        summary = phases.snapshot(now_ms=25_000)["phases"]["cv"]

        assert summary["open"]
        assert summary["duration_sec"] == 15.0
        assert phases.snapshot()["phases"]["cc"] is None


class TestSocEstimate:
    """Linear voltage-to-SOC between the floor and the target."""

    def test_bounds(self):
        assert estimate_soc(3.0, 4.2, 3.0) == 0.0
        assert estimate_soc(4.2, 4.2, 3.0) == 100.0
        assert estimate_soc(3.6, 4.2, 3.0) == pytest.approx(50.0)

    def test_clamped_outside_range(self):
        assert estimate_soc(2.5, 4.2, 3.0) == 0.0
        assert estimate_soc(4.35, 4.2, 3.0) == 100.0

    def test_monotonic_in_voltage(self):
        voltages = [2.8 + 0.05 * i for i in range(40)]
        socs = [estimate_soc(v, 4.2, 3.0) for v in voltages]

        assert socs == sorted(socs)
        assert all(0.0 <= s <= 100.0 for s in socs)

    def test_default_floor_from_settings(self, monkeypatch):
        from config import settings
        monkeypatch.setattr(settings, "SOC_MIN_VOLTAGE_V", 3.2)

        assert estimate_soc(3.2, 4.2) == 0.0

    def test_target_not_above_floor(self):
        with pytest.raises(ValueError):
            estimate_soc(3.5, 3.0, 3.0)
