"""
Battery Charger Monitor - Retention/Cleanup Engine
Version: 1.2.0

Changelog:
v1.2.0 (2026-10-14): Range deletion for "Done & Clear" of a finished cycle
v1.1.0 (2026-10-12): Age filter retried once with the alternate timestamp
                      encoding; candidate read falls back to an alternate
                      location; partial batch failures reported with counts
v1.0.0 (2026-10-05): Initial oldest-N cleanup in 500-record batches

Every call does one snapshot read of the candidate set, then deletes it in
batches of at most 500 records per store commit. Records appended after the
snapshot are not considered for that call. Fallbacks are single-shot:
  - candidate read errors on the primary location -> retry on the fallback
  - age/range filter matches nothing in the store encoding -> retry with the
    alternate encoding
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from config import settings, get_batch_size
from models.retention import RetentionMode, RetentionRequest, RetentionResult
from services.history_store import HistoryStore, StoreError
from timestamps import TimestampEncoding, now_ms

logger = logging.getLogger(__name__)


class RetentionEngine:
    """Bounded deletion of the oldest history records"""

    def __init__(self, store: HistoryStore,
                 primary_location: Optional[str] = None,
                 fallback_location: Optional[str] = None,
                 batch_size: Optional[int] = None,
                 clock: Callable[[], int] = now_ms):
        self.store = store
        self.primary_location = primary_location or settings.RETENTION_PRIMARY_LOCATION
        self.fallback_location = fallback_location or settings.RETENTION_FALLBACK_LOCATION
        self.batch_size = min(batch_size or get_batch_size(), get_batch_size())
        self.clock = clock

    async def run(self, request: RetentionRequest, now: Optional[int] = None) -> RetentionResult:
        """Execute one retention request (count or age mode)"""
        if request.mode == RetentionMode.COUNT:
            logger.info(f"Retention: deleting {request.delete_count} oldest records")

            async def reader(location):
                records = await self.store.query_ordered(location, limit=request.delete_count)
                return records, None

        else:
            now = self.clock() if now is None else now
            cutoff = now - request.older_than_ms
            logger.info(f"Retention: deleting records older than {cutoff} "
                        f"({request.older_than_ms} ms before {now})")

            async def reader(location):
                return await self._read_range(location, less_than=cutoff)

        return await self._execute(reader, filtered=request.mode == RetentionMode.AGE)

    async def delete_range(self, since_ms: int, until_ms: int) -> RetentionResult:
        """Delete every record with since_ms <= timestamp < until_ms"""
        logger.info(f"Retention: deleting records in [{since_ms}, {until_ms})")

        async def reader(location):
            return await self._read_range(location, less_than=until_ms, not_before=since_ms)

        return await self._execute(reader, filtered=True)

    # == Candidate read ==

    async def _read_range(self, location: str, less_than: int,
                          not_before: Optional[int] = None) -> Tuple[List[Dict], Optional[str]]:
        """Filtered read in the store encoding, retried once in the alternate encoding"""
        primary = self.store.encoding
        records = await self.store.query_ordered(
            location, less_than=less_than, not_before=not_before, encoding=primary
        )
        if records:
            return records, primary.value

        alternate = primary.alternate()
        logger.info(f"Retention: no {primary.value} matches on {location}, "
                    f"retrying with {alternate.value} timestamps")
        records = await self.store.query_ordered(
            location, less_than=less_than, not_before=not_before, encoding=alternate
        )
        return records, (alternate.value if records else None)

    async def _read_candidates(self, reader) -> Tuple[List[Dict], Optional[str], str]:
        """Run reader on the primary location, once more on the fallback if it errors"""
        try:
            records, encoding = await reader(self.primary_location)
            return records, encoding, self.primary_location
        except StoreError as primary_error:
            logger.warning(f"Retention read on '{self.primary_location}' failed: {primary_error}; "
                           f"retrying on '{self.fallback_location}'")
            try:
                records, encoding = await reader(self.fallback_location)
            except StoreError as fallback_error:
                raise StoreError(
                    f"'{self.primary_location}': {primary_error}; "
                    f"fallback '{self.fallback_location}': {fallback_error}"
                ) from fallback_error
            return records, encoding, self.fallback_location

    # == Execution ==

    async def _execute(self, reader, filtered: bool) -> RetentionResult:
        try:
            records, encoding, location = await self._read_candidates(reader)
        except StoreError as e:
            logger.error(f"Retention candidate read failed: {e}")
            return RetentionResult(
                success=False,
                message="Candidate read failed",
                error=f"Candidate read failed on primary and fallback locations: {e}",
            )

        if not records:
            logger.info(f"Retention: nothing to delete on '{location}'")
            return RetentionResult(
                success=True,
                deleted_count=0,
                message=("No matching records found "
                         f"(checked {TimestampEncoding.EPOCH_MS.value} and "
                         f"{TimestampEncoding.STRUCTURED.value} timestamps)"
                         if filtered else "No matching records found"),
                location=location,
            )

        return await self._delete_in_batches([r["id"] for r in records], location, encoding)

    async def _delete_in_batches(self, ids: List[str], location: str,
                                 encoding: Optional[str]) -> RetentionResult:
        deleted = 0
        batches = [ids[i:i + self.batch_size] for i in range(0, len(ids), self.batch_size)]

        for index, batch in enumerate(batches, start=1):
            try:
                deleted += await self.store.delete_batch(batch, max_batch_size=self.batch_size)
                logger.debug(f"Retention batch {index}/{len(batches)}: {len(batch)} records")
            except Exception as e:
                logger.error(f"Retention batch {index}/{len(batches)} failed after "
                             f"{deleted} deletions: {e}")
                return RetentionResult(
                    success=False,
                    deleted_count=deleted,
                    partial=deleted > 0,
                    message=f"Deleted {deleted} of {len(ids)} records before batch {index} failed",
                    error=f"Batch {index} of {len(batches)} failed: {e}",
                    location=location,
                    encoding=encoding,
                )

        logger.info(f"Retention: deleted {deleted} records from '{location}' in {len(batches)} batches")
        return RetentionResult(
            success=True,
            deleted_count=deleted,
            message=f"Deleted {deleted} records",
            location=location,
            encoding=encoding,
        )
