"""
Battery Charger Monitor - System Configuration
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Retention location fallback and timestamp encoding settings
v1.0.0 (2026-10-05): Initial configuration module
"""

from pydantic_settings import BaseSettings
from pathlib import Path
import os


class Settings(BaseSettings):
    """System-wide configuration"""

    # Application
    APP_NAME: str = "Battery Charger Monitor"
    APP_VERSION: str = "1.1.0"
    DEBUG: bool = False

    # API Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # History store (SQLite)
    SQLITE_DB_PATH: str = str(Path(__file__).parent / "data" / "charger_monitor.db")
    STORE_TIMEOUT_S: float = 5.0  # per store call
    STORE_TIMESTAMP_ENCODING: str = "epoch_ms"  # "epoch_ms" or "structured"
    CHARGER_COLLECTION: str = "charger"
    TEMPERATURE_COLLECTION: str = "temperature"

    # Ingest
    SAMPLE_QUEUE_SIZE: int = 600  # per stream, ~10 minutes at 1 Hz

    # Logging gate
    LOG_QUEUE_SIZE: int = 5000  # per collection
    LOG_ERROR_REPORT_EVERY: int = 60  # after the first 3 failures

    # Phase energy
    SAMPLE_INTERVAL_S: float = 1.0  # nominal charger cadence

    # SOC estimator
    SOC_MIN_VOLTAGE_V: float = 3.0  # empty-cell floor
    DEFAULT_TARGET_VOLTAGE_V: float = 4.2

    # Retention
    RETENTION_BATCH_SIZE: int = 500  # store commit limit
    RETENTION_PRIMARY_LOCATION: str = "history"  # collection group view
    RETENTION_FALLBACK_LOCATION: str = "temperature"

    # Display
    DISPLAY_TIMEZONE: str = "Asia/Jakarta"
    HISTORY_DEFAULT_LIMIT: int = 50

    # WebSocket
    WS_UPDATE_INTERVAL: float = 5.0  # seconds
    LISTENER_QUEUE_SIZE: int = 100  # pending events per listener

    # File Paths
    LOGS_DIR: str = str(Path(__file__).parent / "logs")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Singleton instance
settings = Settings()

# Hard limit imposed by the store, regardless of configuration
MAX_BATCH_SIZE = 500


def get_batch_size() -> int:
    """Effective retention batch size, never above the store limit"""
    return max(1, min(settings.RETENTION_BATCH_SIZE, MAX_BATCH_SIZE))


def init_directories():
    """Create necessary directories if they don't exist"""
    for directory in [os.path.dirname(os.path.abspath(settings.SQLITE_DB_PATH)), settings.LOGS_DIR]:
        os.makedirs(directory, exist_ok=True)


if __name__ == "__main__":
    print(f"{settings.APP_NAME} Configuration v{settings.APP_VERSION}")
    print(f"SQLite: {settings.SQLITE_DB_PATH} ({settings.STORE_TIMESTAMP_ENCODING})")
    print(f"Collections: {settings.CHARGER_COLLECTION}, {settings.TEMPERATURE_COLLECTION}")
    print(f"Sample interval: {settings.SAMPLE_INTERVAL_S}s")
    print(f"SOC range: {settings.SOC_MIN_VOLTAGE_V}V - {settings.DEFAULT_TARGET_VOLTAGE_V}V")
    print(f"Retention: batch {get_batch_size()}, "
          f"{settings.RETENTION_PRIMARY_LOCATION} -> {settings.RETENTION_FALLBACK_LOCATION}")
