"""
Battery Charger Monitor - Logging Gate
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): One bounded queue + writer task per collection so a slow
                      store never blocks ingestion and per-stream order holds
v1.0.0 (2026-10-05): Initial gated history logging

Samples are persisted only while the state machine reports logging active.
Appends are fire-and-forget: a full queue drops the sample, a failed append
is logged and skipped. Neither affects state or energy accounting.
"""

import asyncio
import logging
from typing import Dict, Optional, Union

from config import settings
from models.charge import ChargerSample, TemperatureSample
from services.history_store import HistoryStore
from timestamps import format_timestamp

logger = logging.getLogger(__name__)

Sample = Union[ChargerSample, TemperatureSample]


class LoggingGate:
    """Gated, non-blocking writer from sample streams to history collections"""

    def __init__(self, store: HistoryStore, state_machine,
                 queue_size: Optional[int] = None,
                 report_every: Optional[int] = None):
        self.store = store
        self.state_machine = state_machine
        self.report_every = report_every or settings.LOG_ERROR_REPORT_EVERY
        size = queue_size or settings.LOG_QUEUE_SIZE
        self.queues: Dict[str, asyncio.Queue] = {
            settings.CHARGER_COLLECTION: asyncio.Queue(maxsize=size),
            settings.TEMPERATURE_COLLECTION: asyncio.Queue(maxsize=size),
        }
        self._writers: Dict[str, asyncio.Task] = {}
        self.written = {name: 0 for name in self.queues}
        self.failed = {name: 0 for name in self.queues}
        self.dropped = {name: 0 for name in self.queues}
        self._consecutive_errors = {name: 0 for name in self.queues}

    def should_log(self, sample: Sample) -> bool:
        return self.state_machine.logging_active

    def offer(self, collection: str, sample: Sample) -> bool:
        """
        Queue a sample for persistence if logging is active

        Returns:
            True if the sample was queued, False if gated off or dropped
        """
        if not self.should_log(sample):
            return False

        queue = self.queues.get(collection)
        if queue is None:
            logger.error(f"No history collection '{collection}' - sample dropped")
            return False

        record = sample.model_dump()
        record["formatted_time"] = format_timestamp(sample.timestamp_ms, self.store.display_timezone)

        try:
            queue.put_nowait(record)
        except asyncio.QueueFull:
            self.dropped[collection] += 1
            self._report_error(collection, f"write queue full ({queue.maxsize}), sample dropped")
            return False
        return True

    async def start(self):
        """Start one writer task per collection"""
        for collection in self.queues:
            if collection not in self._writers or self._writers[collection].done():
                self._writers[collection] = asyncio.create_task(self._writer_loop(collection))
        logger.info(f"Logging gate started for {', '.join(self.queues)}")

    async def stop(self):
        """Cancel writers; queued samples not yet written are discarded"""
        for task in self._writers.values():
            task.cancel()
        await asyncio.gather(*self._writers.values(), return_exceptions=True)
        self._writers = {}

    async def drain(self):
        """Wait until every queued sample has been written or failed"""
        await asyncio.gather(*(queue.join() for queue in self.queues.values()))

    async def _writer_loop(self, collection: str):
        queue = self.queues[collection]
        while True:
            record = await queue.get()
            try:
                await self.store.append(collection, record)
                self.written[collection] += 1
                if self._consecutive_errors[collection]:
                    logger.info(f"History writes to {collection} recovered after "
                                f"{self._consecutive_errors[collection]} failures")
                self._consecutive_errors[collection] = 0
            except Exception as e:
                self.failed[collection] += 1
                self._report_error(collection, f"append failed, sample dropped: {e}")
            finally:
                queue.task_done()

    def _report_error(self, collection: str, message: str):
        """Log the first 3 consecutive errors, then every Nth"""
        self._consecutive_errors[collection] += 1
        count = self._consecutive_errors[collection]
        if count <= 3 or count % self.report_every == 0:
            logger.error(f"History {collection}: {message} (consecutive errors: {count})")

    def get_status(self) -> Dict:
        return {
            "running": any(not task.done() for task in self._writers.values()),
            "queued": {name: queue.qsize() for name, queue in self.queues.items()},
            "written": dict(self.written),
            "failed": dict(self.failed),
            "dropped": dict(self.dropped),
        }
