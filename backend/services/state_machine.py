"""
Battery Charger Monitor - Charge Cycle State Machine
Version: 1.2.0

Changelog:
v1.2.0 (2026-10-14): WaitCfg no longer triggers the fallback start
v1.1.0 (2026-10-12): Fallback logging start when the Detect exit is missed
v1.0.0 (2026-10-05): Initial state machine with Detect-exit logging start

Transition rules per charger sample, evaluated in order:
  1. Idle while logging           -> stop logging (always wins)
  2. Detect -> anything but Idle  -> start logging
  3. inactive, not Idle/Detect/WaitCfg -> start logging (fallback, WARNING)
  4. otherwise                    -> logging flag unchanged
Unknown states carry no phase and never change the logging flag by themselves.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from models.charge import ChargeState, Phase, normalize_state, derive_phase
from services.phase_energy import PhaseEnergyAccumulator

logger = logging.getLogger(__name__)

# States that never start logging through the fallback rule
NO_FALLBACK_STATES = (ChargeState.IDLE, ChargeState.DETECT, ChargeState.WAIT_CFG)


@dataclass
class StateMachineContext:
    """Mutable lifecycle state, owned by one ChargeStateMachine"""
    current_state: ChargeState = ChargeState.IDLE
    previous_state: Optional[ChargeState] = None
    raw_state: Optional[str] = None
    logging_active: bool = False
    logging_start_time: Optional[int] = None  # epoch ms
    phase: Phase = Phase.NONE


@dataclass
class Transition:
    """What one charger sample did to the context"""
    previous_state: ChargeState
    state: ChargeState
    raw_state: Any
    previous_phase: Phase
    phase: Phase
    logging_active: bool
    logging_started: bool = False
    logging_stopped: bool = False
    fallback_start: bool = False
    timestamp_ms: int = 0

    @property
    def state_changed(self) -> bool:
        return self.previous_state != self.state

    @property
    def phase_changed(self) -> bool:
        return self.previous_phase != self.phase


class ChargeStateMachine:
    """Tracks the charger lifecycle, the logging flag and the current phase"""

    def __init__(self, phases: Optional[PhaseEnergyAccumulator] = None):
        self.context = StateMachineContext()
        self.phases = phases if phases is not None else PhaseEnergyAccumulator()

    @property
    def logging_active(self) -> bool:
        return self.context.logging_active

    @property
    def phase(self) -> Phase:
        return self.context.phase

    def process(self, raw_state: Any, now_ms: int) -> Transition:
        """
        Apply one charger sample's state; never raises on malformed input

        Args:
            raw_state: State string as reported by the charger (any type)
            now_ms: Processing time, epoch ms

        Returns:
            Transition describing the changes
        """
        ctx = self.context
        new_state = normalize_state(raw_state)
        old_state = ctx.current_state
        old_phase = ctx.phase

        started = stopped = fallback = False

        if new_state == ChargeState.IDLE and ctx.logging_active:
            ctx.logging_active = False
            ctx.logging_start_time = None
            stopped = True
        elif (old_state == ChargeState.DETECT
              and new_state not in (ChargeState.DETECT, ChargeState.IDLE)
              and not ctx.logging_active):
            ctx.logging_active = True
            ctx.logging_start_time = now_ms
            started = True
        elif (not ctx.logging_active and new_state != ChargeState.UNKNOWN
              and new_state not in NO_FALLBACK_STATES):
            ctx.logging_active = True
            ctx.logging_start_time = now_ms
            started = fallback = True
            logger.warning(f"Fallback logging start in {new_state.value} - "
                           f"expected Detect exit was not observed")

        new_phase = derive_phase(new_state)
        if new_phase != old_phase:
            self.phases.switch_phase(old_phase, new_phase, now_ms)
            ctx.phase = new_phase

        ctx.previous_state = old_state
        ctx.current_state = new_state
        ctx.raw_state = raw_state if isinstance(raw_state, str) else None

        if new_state != old_state:
            logger.info(f"Charger state: {old_state.value} -> {new_state.value}"
                        + (f" (raw '{raw_state}')" if new_state == ChargeState.UNKNOWN else ""))
        if started:
            logger.info("Logging started")
        if stopped:
            logger.info("Logging stopped (charger Idle)")

        return Transition(
            previous_state=old_state,
            state=new_state,
            raw_state=raw_state,
            previous_phase=old_phase,
            phase=new_phase,
            logging_active=ctx.logging_active,
            logging_started=started,
            logging_stopped=stopped,
            fallback_start=fallback,
            timestamp_ms=now_ms,
        )

    def reset(self):
        """Back to the initial empty context, phases included"""
        self.context = StateMachineContext()
        self.phases.reset()
