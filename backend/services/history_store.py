"""
Battery Charger Monitor - History Store
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Encoding-aware range filters; collection-group reads via
                      the 'history' view; delete_batch enforces the 500 cap
v1.0.0 (2026-10-05): Initial append/query/delete over aiosqlite

The append-only, timestamp-ordered record store behind the logging gate and
the retention engine. One table per collection; record ids are opaque
"<collection>/<rowid>" strings so a batch may span collections.
"""

import logging
from typing import Dict, List, Optional, Any

import aiosqlite

from config import settings, MAX_BATCH_SIZE
from database import get_db, execute_all, execute_one, execute_insert
from models import HISTORY_COLLECTIONS, HISTORY_GROUP, history_table
from models.history import HistoryStats
from timestamps import (
    TimestampEncoding, clamp_ms, encode_timestamp, format_timestamp, parse_timestamp,
)

logger = logging.getLogger(__name__)

# Sort key valid for both encodings (integers as-is, ISO text via julianday)
ORDER_KEY = (
    "CASE WHEN typeof(timestamp) IN ('integer', 'real') THEN timestamp "
    "ELSE CAST(ROUND((julianday(timestamp) - 2440587.5) * 86400000.0) AS INTEGER) END"
)

_ENCODING_TYPES = {
    TimestampEncoding.EPOCH_MS: "('integer', 'real')",
    TimestampEncoding.STRUCTURED: "('text')",
}


class StoreError(Exception):
    """A history store call failed"""
    pass


def make_record_id(collection: str, rowid: int) -> str:
    return f"{collection}/{rowid}"


def split_record_id(record_id: str) -> tuple:
    """'<collection>/<rowid>' -> (collection, rowid)"""
    collection, _, rowid = str(record_id).rpartition("/")
    if collection not in HISTORY_COLLECTIONS or not rowid.isdigit():
        raise ValueError(f"Malformed history record id: {record_id}")
    return collection, int(rowid)


class HistoryStore:
    """SQLite-backed history collections"""

    def __init__(self, db_path: Optional[str] = None,
                 encoding: Optional[TimestampEncoding] = None,
                 display_timezone: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.db_path = db_path
        self.encoding = TimestampEncoding(encoding or settings.STORE_TIMESTAMP_ENCODING)
        self.display_timezone = display_timezone or settings.DISPLAY_TIMEZONE
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_S

    def _connect(self):
        return get_db(self.db_path, timeout=self.timeout)

    def _source(self, location: str) -> str:
        if location == HISTORY_GROUP:
            return HISTORY_GROUP
        if location in HISTORY_COLLECTIONS:
            return history_table(location)
        raise StoreError(f"Unknown store location: {location}")

    # == Writes ==

    async def append(self, collection: str, record: Dict[str, Any]) -> str:
        """
        Append one record to a collection

        Args:
            collection: 'charger' or 'temperature'
            record: value fields plus 'timestamp_ms' (and optional 'formatted_time')

        Returns:
            Opaque record id
        """
        if collection == HISTORY_GROUP:
            raise StoreError("Cannot append to the collection group")
        table = self._source(collection)

        timestamp_ms = record["timestamp_ms"]
        formatted = record.get("formatted_time") or format_timestamp(timestamp_ms, self.display_timezone)
        value_columns = list(HISTORY_COLLECTIONS[collection])

        columns = ["timestamp", "formatted_time"] + value_columns
        params = [encode_timestamp(timestamp_ms, self.encoding), formatted]
        params += [record.get(name) for name in value_columns]
        placeholders = ", ".join("?" for _ in columns)

        try:
            async with self._connect() as db:
                rowid = await execute_insert(
                    db,
                    f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                    params
                )
        except (aiosqlite.Error, OSError) as e:
            raise StoreError(f"Append to {collection} failed: {e}") from e

        return make_record_id(collection, rowid)

    async def delete_one(self, record_id: str) -> bool:
        """Delete a single record, True if it existed"""
        return await self.delete_batch([record_id], max_batch_size=1) == 1

    async def delete_batch(self, ids: List[str], max_batch_size: int = MAX_BATCH_SIZE) -> int:
        """
        Delete up to max_batch_size records in a single commit

        Returns:
            Number of records actually removed
        """
        if len(ids) > min(max_batch_size, MAX_BATCH_SIZE):
            raise ValueError(f"Batch of {len(ids)} exceeds limit of {min(max_batch_size, MAX_BATCH_SIZE)}")
        if not ids:
            return 0

        by_collection: Dict[str, List[int]] = {}
        for record_id in ids:
            collection, rowid = split_record_id(record_id)
            by_collection.setdefault(collection, []).append(rowid)

        deleted = 0
        try:
            async with self._connect() as db:
                for collection, rowids in by_collection.items():
                    placeholders = ", ".join("?" for _ in rowids)
                    cursor = await db.execute(
                        f"DELETE FROM {history_table(collection)} WHERE id IN ({placeholders})",
                        rowids
                    )
                    deleted += cursor.rowcount
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise StoreError(f"Batch delete of {len(ids)} records failed: {e}") from e

        return deleted

    # == Reads ==

    async def query_ordered(
        self,
        location: str,
        limit: Optional[int] = None,
        less_than: Optional[int] = None,
        not_before: Optional[int] = None,
        encoding: Optional[TimestampEncoding] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Read records ordered by timestamp in one snapshot

        Range filters (less_than / not_before, epoch ms) only match rows
        stored in the given encoding; without filters every row is returned
        in true time order regardless of encoding.

        Returns:
            Dicts with id, collection, timestamp (raw), timestamp_ms,
            formatted_time and, for single collections, the value fields
        """
        source = self._source(location)
        where = []
        params: List[Any] = []

        if less_than is not None or not_before is not None:
            encoding = TimestampEncoding(encoding or self.encoding)
            where.append(f"typeof(timestamp) IN {_ENCODING_TYPES[encoding]}")
            # Clamped so out-of-range bounds still encode in either form
            if less_than is not None:
                where.append("timestamp < ?")
                params.append(encode_timestamp(clamp_ms(less_than), encoding))
            if not_before is not None:
                where.append("timestamp >= ?")
                params.append(encode_timestamp(clamp_ms(not_before), encoding))

        sql = f"SELECT * FROM {source}"
        if where:
            sql += " WHERE " + " AND ".join(where)
        direction = "DESC" if descending else "ASC"
        sql += f" ORDER BY {ORDER_KEY} {direction}, id {direction}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        try:
            async with self._connect() as db:
                rows = await execute_all(db, sql, params)
        except (aiosqlite.Error, OSError, OverflowError) as e:
            raise StoreError(f"Query on {location} failed: {e}") from e

        return [self._row_to_record(location, row) for row in rows]

    def _row_to_record(self, location: str, row: Dict[str, Any]) -> Dict[str, Any]:
        collection = row.pop("collection", None) or location
        row.pop("created_at", None)
        rowid = row.pop("id")
        raw_timestamp = row.pop("timestamp")
        return {
            "id": make_record_id(collection, rowid),
            "collection": collection,
            "timestamp": raw_timestamp,
            "timestamp_ms": parse_timestamp(raw_timestamp),
            "formatted_time": row.pop("formatted_time", None),
            "fields": row,
        }

    async def count(self, location: str) -> int:
        source = self._source(location)
        try:
            async with self._connect() as db:
                row = await execute_one(db, f"SELECT COUNT(*) AS n FROM {source}")
        except (aiosqlite.Error, OSError) as e:
            raise StoreError(f"Count on {location} failed: {e}") from e
        return row["n"] if row else 0

    async def stats(self, collection: str) -> HistoryStats:
        """Total, oldest/newest and (temperature only) Celsius summary"""
        table = self._source(collection)
        select = f"COUNT(*) AS total, MIN({ORDER_KEY}) AS oldest, MAX({ORDER_KEY}) AS newest"
        if collection == settings.TEMPERATURE_COLLECTION:
            select += ", MIN(celsius) AS min_c, MAX(celsius) AS max_c, AVG(celsius) AS avg_c"

        try:
            async with self._connect() as db:
                row = await execute_one(db, f"SELECT {select} FROM {table}")
        except (aiosqlite.Error, OSError) as e:
            raise StoreError(f"Stats on {collection} failed: {e}") from e

        row = row or {}
        oldest = row.get("oldest")
        newest = row.get("newest")
        return HistoryStats(
            collection=collection,
            total=row.get("total") or 0,
            oldest_ms=oldest,
            newest_ms=newest,
            oldest_time=format_timestamp(oldest, self.display_timezone) if oldest is not None else None,
            newest_time=format_timestamp(newest, self.display_timezone) if newest is not None else None,
            min_celsius=row.get("min_c"),
            max_celsius=row.get("max_c"),
            avg_celsius=round(row["avg_c"], 2) if row.get("avg_c") is not None else None,
        )
