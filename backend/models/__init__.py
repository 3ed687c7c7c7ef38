"""
Battery Charger Monitor - Database Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): 'history' collection-group view over all history tables;
                      timestamp column declared without affinity so epoch-ms
                      integers and structured text both survive as written
v1.0.0 (2026-10-05): Initial charger/temperature history schema
"""

from .charge import ChargerSample, TemperatureSample, ChargeState, Phase, CycleConfig
from .history import HistoryRecord, HistoryStats
from .retention import RetentionRequest, RetentionResult, RetentionMode

import aiosqlite
import logging

logger = logging.getLogger(__name__)

# Collection name -> value columns (beyond id/timestamp/formatted_time)
HISTORY_COLLECTIONS = {
    "charger": {
        "voltage": "REAL",
        "current": "REAL",
        "state": "TEXT",
    },
    "temperature": {
        "celsius": "REAL",
        "fahrenheit": "REAL",
    },
}

# Name of the view spanning every history table
HISTORY_GROUP = "history"


def history_table(collection: str) -> str:
    """Table backing a history collection"""
    if collection not in HISTORY_COLLECTIONS:
        raise ValueError(f"Unknown history collection: {collection}")
    return f"{collection}_history"


async def init_db(db_path: str = None):
    """Initialize SQLite database with history schema"""
    from database import get_db_path
    db_path = db_path or get_db_path()
    logger.info(f"Initializing database: {db_path}")

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")

        for collection, columns in HISTORY_COLLECTIONS.items():
            table = history_table(collection)
            value_columns = ",\n                ".join(
                f"{name} {col_type}" for name, col_type in columns.items()
            )
            # timestamp has no declared type: INTEGER epoch ms or TEXT ISO-8601
            await db.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp NOT NULL,
                    formatted_time TEXT,
                    {value_columns},
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_timestamp ON {table}(timestamp)"
            )

        selects = "\nUNION ALL\n".join(
            f"SELECT '{collection}' AS collection, id, timestamp, formatted_time "
            f"FROM {history_table(collection)}"
            for collection in HISTORY_COLLECTIONS
        )
        await db.execute(f"CREATE VIEW IF NOT EXISTS {HISTORY_GROUP} AS {selects}")

        await db.commit()

    logger.info("Database initialized")
