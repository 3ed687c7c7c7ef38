"""Test the SQLite history store."""

import pytest

from conftest import seed_temperature
from services.history_store import HistoryStore, StoreError, split_record_id
from timestamps import TimestampEncoding


class TestAppendAndQuery:
    """Append-only collections read back in time order."""

    @pytest.mark.asyncio
    async def test_append_returns_collection_scoped_id(self, store):
        record_id = await store.append("charger", {
            "timestamp_ms": 1000, "voltage": 3.9, "current": 1.2, "state": "CC",
        })

        assert split_record_id(record_id) == ("charger", 1)

    @pytest.mark.asyncio
    async def test_query_is_time_ordered(self, store):
        await seed_temperature(store, [300, 100, 200])
        records = await store.query_ordered("temperature")

        assert [r["timestamp_ms"] for r in records] == [100, 200, 300]
        assert records[0]["fields"]["celsius"] == 25.0
        assert records[0]["formatted_time"] == "01 Jan 1970 00:00:00"

    @pytest.mark.asyncio
    async def test_group_spans_collections(self, store):
        await seed_temperature(store, [200])
        await store.append("charger", {"timestamp_ms": 100, "voltage": 4.0, "current": 1.0, "state": "CV"})

        records = await store.query_ordered("history")
        assert [(r["collection"], r["timestamp_ms"]) for r in records] == [
            ("charger", 100), ("temperature", 200),
        ]

    @pytest.mark.asyncio
    async def test_mixed_encodings_order_by_time(self, store, db_path):
        await seed_temperature(store, [100, 300])
        structured = HistoryStore(db_path=db_path, encoding=TimestampEncoding.STRUCTURED)
        await seed_temperature(structured, [200])

        records = await store.query_ordered("temperature")
        assert [r["timestamp_ms"] for r in records] == [100, 200, 300]
        assert isinstance(records[1]["timestamp"], str)

    @pytest.mark.asyncio
    async def test_range_filter_only_matches_its_encoding(self, store, db_path):
        structured = HistoryStore(db_path=db_path, encoding=TimestampEncoding.STRUCTURED)
        await seed_temperature(structured, [100, 200])

        assert await store.query_ordered("temperature", less_than=1000) == []
        matched = await store.query_ordered(
            "temperature", less_than=1000, encoding=TimestampEncoding.STRUCTURED
        )
        assert len(matched) == 2

    @pytest.mark.asyncio
    async def test_cannot_append_to_group(self, store):
        with pytest.raises(StoreError):
            await store.append("history", {"timestamp_ms": 1})

    @pytest.mark.asyncio
    async def test_unknown_location(self, store):
        with pytest.raises(StoreError, match="Unknown store location"):
            await store.query_ordered("humidity")


class TestDelete:
    """Batch deletes commit once and respect the 500 limit."""

    @pytest.mark.asyncio
    async def test_delete_batch_across_collections(self, store):
        ids = await seed_temperature(store, [100, 200])
        ids.append(await store.append("charger", {"timestamp_ms": 150, "voltage": 4.0, "current": 1.0, "state": "CC"}))

        assert await store.delete_batch(ids) == 3
        assert await store.count("history") == 0

    @pytest.mark.asyncio
    async def test_batch_over_limit_rejected(self, store):
        ids = [f"temperature/{i}" for i in range(1, 502)]
        with pytest.raises(ValueError, match="exceeds limit"):
            await store.delete_batch(ids)

    @pytest.mark.asyncio
    async def test_delete_missing_record(self, store):
        assert await store.delete_one("temperature/42") is False

    @pytest.mark.asyncio
    async def test_store_errors_are_wrapped(self, tmp_path):
        # Directory in place of the database file
        broken = HistoryStore(db_path=str(tmp_path))
        with pytest.raises(StoreError):
            await broken.count("temperature")


class TestStats:
    """Collection summaries."""

    @pytest.mark.asyncio
    async def test_temperature_stats(self, store):
        await seed_temperature(store, [100], celsius=20.0)
        await seed_temperature(store, [300], celsius=30.0)

        stats = await store.stats("temperature")
        assert stats.total == 2
        assert stats.oldest_ms == 100
        assert stats.newest_ms == 300
        assert stats.min_celsius == 20.0
        assert stats.max_celsius == 30.0
        assert stats.avg_celsius == 25.0

    @pytest.mark.asyncio
    async def test_empty_stats(self, store):
        stats = await store.stats("charger")
        assert stats.total == 0
        assert stats.oldest_time is None
        assert stats.min_celsius is None
