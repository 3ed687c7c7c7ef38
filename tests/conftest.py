"""Test fixtures for the charger monitor backend."""

import pytest
import pytest_asyncio

from config import settings
from models import init_db
from services.history_store import HistoryStore
from services.phase_energy import PhaseEnergyAccumulator
from services.state_machine import ChargeStateMachine
from timestamps import TimestampEncoding


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh database file; env override cleared so settings decide."""
    path = str(tmp_path / "history.db")
    monkeypatch.delenv("CHARGER_MONITOR_DB", raising=False)
    monkeypatch.setattr(settings, "SQLITE_DB_PATH", path)
    return path


@pytest_asyncio.fixture
async def store(db_path) -> HistoryStore:
    """Epoch-ms history store on an initialized database."""
    await init_db(db_path)
    return HistoryStore(db_path=db_path, encoding=TimestampEncoding.EPOCH_MS,
                        display_timezone="UTC")


@pytest_asyncio.fixture
async def structured_store(db_path) -> HistoryStore:
    """History store writing ISO-8601 text timestamps."""
    await init_db(db_path)
    return HistoryStore(db_path=db_path, encoding=TimestampEncoding.STRUCTURED,
                        display_timezone="UTC")


@pytest.fixture
def phases() -> PhaseEnergyAccumulator:
    return PhaseEnergyAccumulator(sample_interval_s=1.0)


@pytest.fixture
def state_machine(phases) -> ChargeStateMachine:
    return ChargeStateMachine(phases)


async def seed_temperature(store: HistoryStore, timestamps, celsius: float = 25.0):
    """Append one temperature record per timestamp, returns the ids."""
    ids = []
    for ts in timestamps:
        ids.append(await store.append("temperature", {
            "timestamp_ms": ts,
            "celsius": celsius,
            "fahrenheit": celsius * 9 / 5 + 32,
        }))
    return ids
