"""Persistence sink writing captured events to the events table.

Each call to ``EventSink.insert`` is one round trip in its own transaction.
There is no batching, so a failure only loses the event being written.
"""

import logging
import uuid
from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from .database import DatabaseConfig
from .errors import InvalidEventURLError, PersistenceError
from .models import Event
from ..models.capture import CapturedEvent

logger = logging.getLogger(__name__)


def extract_hostname(url: str) -> str:
    """Return the bare hostname of ``url``.

    Scheme, port, path and userinfo are dropped. URLs whose scheme has no
    authority part (``data:``, ``blob:``, ``about:``) yield an empty hostname.

    Raises:
        InvalidEventURLError: If the URL has no scheme or cannot be parsed
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidEventURLError(f"Failed to parse URL {url!r}: {e}", url) from e

    if not parts.scheme:
        raise InvalidEventURLError(f"Failed to parse URL {url!r}: missing scheme", url)

    return hostname or ""


def serialize_payload(payload: BaseModel) -> str:
    """Serialize an event payload to JSON text, or ``""`` if that fails."""
    try:
        return payload.model_dump_json(by_alias=True, exclude_none=True)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        logger.error(f"Failed to serialize event payload: {e}")
        return ""


class EventSink:
    """Writes captured events, one row per event."""

    def __init__(self, database: DatabaseConfig):
        self.database = database

    async def insert(self, test_id: uuid.UUID, event: CapturedEvent) -> Event:
        """Insert one captured event.

        Args:
            test_id: Identifier of the capture run
            event: Captured request or response

        Returns:
            The inserted row

        Raises:
            InvalidEventURLError: If the event URL is malformed; nothing is written
            PersistenceError: If the write fails
        """
        payload = serialize_payload(event.payload)
        domain = extract_hostname(event.url)

        logger.debug(f"Inserting into events table: test_id={test_id} type={event.kind.value} domain={domain}")

        row = Event(
            test_id=test_id,
            type=event.kind.value,
            domain=domain,
            payload=payload,
            body=event.body,
        )

        try:
            async with self.database.session() as session:
                session.add(row)
                await session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to insert into events table: {e}") from e

        return row

    async def count(self, test_id: Optional[uuid.UUID] = None) -> int:
        """Count stored events, optionally for a single run."""
        query = select(func.count(Event.event_id))
        if test_id is not None:
            query = query.where(Event.test_id == test_id)

        async with self.database.session() as session:
            result = await session.execute(query)
            return result.scalar_one()
