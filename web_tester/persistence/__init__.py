"""web-tester persistence layer.

Key Components:
- Config: connection settings from DB_* environment variables
- Database: async SQLAlchemy engine, sessions and schema bootstrap
- Models: the append-only ``events`` table
- Sink: one-row-per-event writer

Usage:
    from web_tester.persistence import DatabaseConfig, DBSettings, EventSink, init_database

    database = DatabaseConfig.from_settings(DBSettings.from_environment())
    await init_database(database)
    await EventSink(database).insert(test_id, captured_event)
"""

from .config import DBSettings
from .database import Base, DatabaseConfig, init_database
from .errors import (
    DatabaseConnectionError,
    DatabaseSettingsError,
    InvalidEventURLError,
    PersistenceError,
)
from .models import Event
from .sink import EventSink, extract_hostname, serialize_payload

__all__ = [
    "Base",
    "DBSettings",
    "DatabaseConfig",
    "DatabaseConnectionError",
    "DatabaseSettingsError",
    "Event",
    "EventSink",
    "InvalidEventURLError",
    "PersistenceError",
    "extract_hostname",
    "init_database",
    "serialize_payload",
]
