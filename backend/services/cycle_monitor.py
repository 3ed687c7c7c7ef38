"""
Battery Charger Monitor - Charge Cycle Monitor
Version: 1.2.1

Changelog:
v1.2.1 (2026-10-19): Listeners run on their own tasks behind bounded queues;
                      energy is integrated before the sample is offered for logging
v1.2.0 (2026-10-14): "Done & Clear" removes the cycle's history range and
                      resets state and phase stats
v1.1.0 (2026-10-12): Bounded queue and one consumer loop per sample stream
v1.0.0 (2026-10-05): Initial monitor wiring state machine, gate and energy

Owns everything for one rig: the history store handle, the state machine
and its phase stats, the logging gate and the retention engine. An instance
lives on app.state and is handed to routes; there is no module singleton.

Charger samples are applied by a single consumer loop and each transition
runs without awaiting, so two charger updates never interleave. The
temperature loop only records the latest reading and offers it to the gate.
Listener events (WebSocket fan-out) are queued per listener, so a slow
client drops its own events instead of stalling the charger loop.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from config import settings
from models.charge import ChargerSample, TemperatureSample, CycleConfig, Phase
from models.retention import RetentionRequest, RetentionResult
from services.history_store import HistoryStore
from services.logging_gate import LoggingGate
from services.phase_energy import PhaseEnergyAccumulator
from services.retention import RetentionEngine
from services.soc import estimate_soc
from services.state_machine import ChargeStateMachine, Transition
from timestamps import now_ms

logger = logging.getLogger(__name__)

Listener = Callable[[Dict], Awaitable[None]]


class ChargeCycleMonitor:
    """Event handlers for the charger and temperature streams of one rig"""

    def __init__(self, store: HistoryStore,
                 config: Optional[CycleConfig] = None,
                 clock: Callable[[], int] = now_ms,
                 sample_queue_size: Optional[int] = None,
                 sample_interval_s: Optional[float] = None):
        self.store = store
        self.clock = clock
        self.config = config
        self.phases = PhaseEnergyAccumulator(sample_interval_s)
        self.state_machine = ChargeStateMachine(self.phases)
        self.gate = LoggingGate(store, self.state_machine)
        self.retention = RetentionEngine(store, clock=clock)

        size = sample_queue_size or settings.SAMPLE_QUEUE_SIZE
        self.charger_queue: asyncio.Queue = asyncio.Queue(maxsize=size)
        self.temperature_queue: asyncio.Queue = asyncio.Queue(maxsize=size)

        self.latest_charger: Optional[ChargerSample] = None
        self.latest_temperature: Optional[TemperatureSample] = None
        self.logged_range: Optional[Tuple[int, int]] = None  # sample timestamps of this cycle
        self.listener_queue_size = settings.LISTENER_QUEUE_SIZE
        self.listeners: List[Tuple[Listener, asyncio.Queue]] = []
        self._consumers: List[asyncio.Task] = []
        self._dispatchers: List[asyncio.Task] = []

    # == Ingest boundary ==

    def submit_charger(self, payload: Dict) -> bool:
        """Queue a raw charger payload; never blocks, False if dropped"""
        sample = ChargerSample.from_payload(payload, self.clock())
        return self._enqueue(self.charger_queue, sample, "charger")

    def submit_temperature(self, payload: Dict) -> bool:
        """Queue a raw temperature payload; never blocks, False if dropped"""
        sample = TemperatureSample.from_payload(payload, self.clock())
        return self._enqueue(self.temperature_queue, sample, "temperature")

    def _enqueue(self, queue: asyncio.Queue, sample, stream: str) -> bool:
        try:
            queue.put_nowait(sample)
        except asyncio.QueueFull:
            logger.error(f"{stream} sample queue full ({queue.maxsize}), sample dropped")
            return False
        return True

    # == Event handlers ==

    def handle_charger_sample(self, sample: ChargerSample, now: Optional[int] = None) -> Transition:
        """Apply one charger sample: state, energy, persistence"""
        now = self.clock() if now is None else now
        transition = self.state_machine.process(sample.state, now)
        self.latest_charger = sample

        if transition.logging_active and transition.phase != Phase.NONE:
            celsius = self.latest_temperature.celsius if self.latest_temperature else None
            self.phases.add_sample(transition.phase, sample.voltage, sample.current, celsius)

        if self.gate.offer(settings.CHARGER_COLLECTION, sample):
            self._track_logged(sample.timestamp_ms)

        return transition

    def handle_temperature_sample(self, sample: TemperatureSample):
        """Record the latest temperature and offer it to the gate"""
        self.latest_temperature = sample
        if self.gate.offer(settings.TEMPERATURE_COLLECTION, sample):
            self._track_logged(sample.timestamp_ms)

    def _track_logged(self, timestamp_ms: int):
        if self.logged_range is None:
            self.logged_range = (timestamp_ms, timestamp_ms)
        else:
            first, last = self.logged_range
            self.logged_range = (min(first, timestamp_ms), max(last, timestamp_ms))

    # == Consumer loops ==

    async def start(self):
        """Start the gate writers and one consumer per stream"""
        await self.gate.start()
        self._consumers = [
            asyncio.create_task(self._charger_loop()),
            asyncio.create_task(self._temperature_loop()),
        ]
        self._dispatchers = [
            asyncio.create_task(self._dispatch_loop(listener, queue))
            for listener, queue in self.listeners
        ]
        logger.info("Charge cycle monitor started")

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._consumers)

    async def stop(self):
        tasks = self._consumers + self._dispatchers
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._consumers = []
        self._dispatchers = []
        await self.gate.stop()
        logger.info("Charge cycle monitor stopped")

    async def drain(self):
        """Wait until queued samples are applied and their writes settled"""
        await self.charger_queue.join()
        await self.temperature_queue.join()
        await self.gate.drain()

    async def drain_listeners(self):
        """Wait until every queued listener event has been delivered"""
        await asyncio.gather(*(queue.join() for _, queue in self.listeners))

    async def _charger_loop(self):
        while True:
            sample = await self.charger_queue.get()
            try:
                transition = self.handle_charger_sample(sample)
                if transition.state_changed or transition.logging_started or transition.logging_stopped:
                    self._notify("transition", {
                        "from": transition.previous_state.value,
                        "to": transition.state.value,
                        "phase": transition.phase.value,
                        "logging_active": transition.logging_active,
                        "fallback_start": transition.fallback_start,
                    })
            except Exception as e:
                logger.error(f"Failed to process charger sample: {e}")
            finally:
                self.charger_queue.task_done()

    async def _temperature_loop(self):
        while True:
            sample = await self.temperature_queue.get()
            try:
                self.handle_temperature_sample(sample)
            except Exception as e:
                logger.error(f"Failed to process temperature sample: {e}")
            finally:
                self.temperature_queue.task_done()

    # == Listeners ==

    def add_listener(self, listener: Listener):
        """Register an event listener; it runs on its own task behind a bounded queue"""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.listener_queue_size)
        self.listeners.append((listener, queue))
        if self.running:
            self._dispatchers.append(asyncio.create_task(self._dispatch_loop(listener, queue)))

    def _notify(self, event_type: str, data: Dict):
        """Queue an event for every listener; never waits on a slow one"""
        event = {"type": event_type, "data": data, "status": self.get_status()}
        for listener, queue in self.listeners:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Listener queue full ({queue.maxsize}), {event_type} event dropped")

    async def _dispatch_loop(self, listener: Listener, queue: asyncio.Queue):
        while True:
            event = await queue.get()
            try:
                await listener(event)
            except Exception as e:
                logger.error(f"Listener failed on {event['type']}: {e}")
            finally:
                queue.task_done()

    # == Cycle lifecycle ==

    def set_config(self, config: CycleConfig):
        self.config = config
        logger.info(f"Cycle config: target {config.target_voltage_v}V, "
                    f"{config.battery_capacity_mah}mAh, Vref {config.vref}V, Iref {config.iref}A")

    async def run_retention(self, request: RetentionRequest) -> RetentionResult:
        return await self.retention.run(request)

    async def clear_cycle(self) -> RetentionResult:
        """Delete this cycle's history, then reset state and phase stats"""
        if self.logged_range is None:
            result = RetentionResult(success=True, deleted_count=0,
                                     message="No history recorded for this cycle")
        else:
            # Let queued appends land so the range delete sees them
            await self.gate.drain()
            first, last = self.logged_range
            result = await self.retention.delete_range(first, last + 1)

        self.state_machine.reset()
        self.logged_range = None
        logger.info(f"Cycle cleared: {result.deleted_count} history records removed")
        self._notify("cleared", result.to_response())
        return result

    # == Read views ==

    @property
    def soc_percent(self) -> Optional[float]:
        if self.latest_charger is None:
            return None
        target = self.config.target_voltage_v if self.config else settings.DEFAULT_TARGET_VOLTAGE_V
        floor = self.config.min_voltage_v if self.config else None
        try:
            return estimate_soc(self.latest_charger.voltage, target, floor)
        except ValueError as e:
            logger.warning(f"SOC unavailable: {e}")
            return None

    def get_status(self) -> Dict:
        ctx = self.state_machine.context
        now = self.clock()
        energy = self.phases.snapshot(now)
        return {
            "state": ctx.current_state.value,
            "previous_state": ctx.previous_state.value if ctx.previous_state else None,
            "raw_state": ctx.raw_state,
            "logging_active": ctx.logging_active,
            "logging_start_time": ctx.logging_start_time,
            "phase": ctx.phase.value,
            "phases": energy["phases"],
            "total_energy_wh": energy["total_energy_wh"],
            "soc_percent": self.soc_percent,
            "latest_charger": self.latest_charger.model_dump() if self.latest_charger else None,
            "latest_temperature": self.latest_temperature.model_dump() if self.latest_temperature else None,
            "config": self.config.model_dump() if self.config else None,
            "gate": self.gate.get_status(),
        }
