"""Test charger lifecycle transitions and the logging flag."""

import pytest

from models.charge import ChargeState, Phase, normalize_state, derive_phase


class TestNormalizeState:
    """Raw charger strings onto the closed state set."""

    @pytest.mark.parametrize("raw,expected", [
        ("Idle", ChargeState.IDLE),
        ("DETECT", ChargeState.DETECT),
        ("cc", ChargeState.CC),
        ("Trans", ChargeState.TRANS),
        ("CV", ChargeState.CV),
        ("done", ChargeState.DONE),
        ("WAIT_CFG", ChargeState.WAIT_CFG),
        ("wait cfg", ChargeState.WAIT_CFG),
    ])
    def test_known_states(self, raw, expected):
        assert normalize_state(raw) == expected

    @pytest.mark.parametrize("raw", ["Charging", "", None, 3, {"state": "CC"}])
    def test_everything_else_is_unknown(self, raw):
        assert normalize_state(raw) == ChargeState.UNKNOWN

    def test_phase_derivation(self):
        assert derive_phase(ChargeState.CC) == Phase.CC
        assert derive_phase(ChargeState.TRANS) == Phase.CC
        assert derive_phase(ChargeState.CV) == Phase.CV
        for state in (ChargeState.IDLE, ChargeState.DETECT, ChargeState.DONE,
                      ChargeState.WAIT_CFG, ChargeState.UNKNOWN):
            assert derive_phase(state) == Phase.NONE


class TestLoggingStart:
    """When logging switches on."""

    def test_detect_exit_starts_logging(self, state_machine, phases):
        state_machine.process("Idle", 0)
        state_machine.process("Detect", 500)
        transition = state_machine.process("CC", 1000)

        assert transition.logging_started
        assert not transition.fallback_start
        assert state_machine.logging_active
        assert state_machine.context.logging_start_time == 1000
        assert phases.get(Phase.CC).start_time == 1000

    def test_detect_to_done_starts_logging(self, state_machine):
        state_machine.process("Detect", 0)
        transition = state_machine.process("Done", 100)

        assert transition.logging_started
        assert transition.phase == Phase.NONE

    def test_detect_to_idle_does_not_start(self, state_machine):
        state_machine.process("Detect", 0)
        transition = state_machine.process("Idle", 100)

        assert not transition.logging_started
        assert not state_machine.logging_active

    def test_fallback_start_when_detect_missed(self, state_machine, caplog):
        """First sample already in CV (bridge reconnected mid-charge)."""
        transition = state_machine.process("CV", 2000)

        assert transition.logging_started
        assert transition.fallback_start
        assert state_machine.logging_active
        assert "Fallback logging start" in caplog.text

    @pytest.mark.parametrize("raw", ["Idle", "Detect", "WaitCfg", "garbage"])
    def test_no_fallback_for_waiting_or_unknown_states(self, state_machine, raw):
        transition = state_machine.process(raw, 100)

        assert not transition.logging_started
        assert not state_machine.logging_active

    def test_already_logging_is_not_restarted(self, state_machine):
        state_machine.process("CC", 100)
        transition = state_machine.process("CV", 200)

        assert not transition.logging_started
        assert state_machine.context.logging_start_time == 100


class TestLoggingStop:
    """Idle always stops logging."""

    def test_idle_stops_logging(self, state_machine):
        state_machine.process("Detect", 0)
        state_machine.process("CC", 100)
        transition = state_machine.process("Idle", 200)

        assert transition.logging_stopped
        assert not state_machine.logging_active
        assert state_machine.context.logging_start_time is None

    @pytest.mark.parametrize("sequence", [
        ["Detect", "CC", "Idle"],
        ["CV", "Idle", "Idle"],
        ["Detect", "Trans", "CV", "Done", "Idle"],
        ["garbage", "CC", "Idle", "WaitCfg"],
    ])
    def test_never_logging_while_idle(self, state_machine, sequence):
        for i, raw in enumerate(sequence):
            transition = state_machine.process(raw, i * 100)
            if transition.state == ChargeState.IDLE:
                assert not transition.logging_active

    def test_unknown_keeps_logging_flag(self, state_machine):
        state_machine.process("CC", 0)
        transition = state_machine.process("???", 100)

        assert transition.state == ChargeState.UNKNOWN
        assert transition.logging_active
        assert transition.phase == Phase.NONE


class TestPhaseTracking:
    """Phase boundaries follow state changes."""

    def test_cc_to_cv_closes_cc(self, state_machine, phases):
        state_machine.process("Detect", 0)
        state_machine.process("CC", 1000)
        state_machine.process("Trans", 5000)
        state_machine.process("CV", 9000)

        cc = phases.get(Phase.CC)
        cv = phases.get(Phase.CV)
        assert cc.end_time == 9000
        assert cc.duration_sec == 8.0
        assert cv.is_open
        assert cv.start_time == 9000

    def test_trans_stays_in_cc_phase(self, state_machine):
        state_machine.process("CC", 0)
        transition = state_machine.process("Trans", 100)

        assert transition.state_changed
        assert not transition.phase_changed
        assert transition.phase == Phase.CC

    def test_reset_clears_context_and_phases(self, state_machine, phases):
        state_machine.process("CC", 0)
        state_machine.reset()

        assert state_machine.context.current_state == ChargeState.IDLE
        assert not state_machine.logging_active
        assert phases.stats == {}
