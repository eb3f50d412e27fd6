"""Test configuration and fixtures for persistence layer tests."""

from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio

from web_tester.persistence.database import DatabaseConfig
from web_tester.persistence.sink import EventSink


@pytest_asyncio.fixture(scope="function")
async def test_db_config() -> AsyncGenerator[DatabaseConfig, None]:
    """Create test database configuration with in-memory SQLite."""
    config = DatabaseConfig(
        url="sqlite+aiosqlite:///:memory:",
        echo=False
    )
    await config.init_schema()

    yield config

    await config.close()


@pytest.fixture
def sink(test_db_config: DatabaseConfig) -> EventSink:
    """Create an event sink on the test database."""
    return EventSink(test_db_config)


@pytest.fixture
def test_id():
    """A capture run identifier."""
    return uuid4()
