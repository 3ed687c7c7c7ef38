"""
Battery Charger Monitor - Database Connection Manager
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-12): Per-call timeout from settings.STORE_TIMEOUT_S
v1.0.0 (2026-10-05): Initial database connection manager with async helpers

Provides centralized async SQLite connection management for the history store.
Uses aiosqlite with WAL journal mode. Every store call opens its own
connection, so ingestion and retention never share a transaction.
"""

import os
import aiosqlite
from contextlib import asynccontextmanager

from config import settings


def get_db_path() -> str:
    """Resolve database path, create data directory if needed"""
    db_path = os.environ.get("CHARGER_MONITOR_DB", settings.SQLITE_DB_PATH)
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    return db_path


@asynccontextmanager
async def get_db(db_path: str = None, timeout: float = None):
    """Async context manager yielding an aiosqlite connection in WAL mode"""
    db = await aiosqlite.connect(
        db_path or get_db_path(),
        timeout=timeout if timeout is not None else settings.STORE_TIMEOUT_S
    )
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    try:
        yield db
    finally:
        await db.close()


async def execute_one(db, sql: str, params=()) -> dict | None:
    """Execute query and return first row as dict, or None"""
    cursor = await db.execute(sql, params)
    row = await cursor.fetchone()
    return dict(row) if row else None


async def execute_all(db, sql: str, params=()) -> list[dict]:
    """Execute query and return all rows as list of dicts"""
    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]


async def execute_insert(db, sql: str, params=()) -> int:
    """Execute INSERT, commit, and return lastrowid"""
    cursor = await db.execute(sql, params)
    await db.commit()
    return cursor.lastrowid

