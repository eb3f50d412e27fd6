"""Capture runner for web-tester.

Performs one complete capture run: start a browser session, attach the event
listener and body fetcher, navigate and dwell, drain pending work, then write
every captured request and response to the events table.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..capture.body_fetcher import BodyFetcher
from ..capture.errors import SessionError
from ..capture.event_store import EventStore
from ..capture.network_listener import NetworkEventListener
from ..capture.session import SESSION_TIMEOUT_SECONDS, BrowserSession
from ..models.capture import CapturedEvent, FinishedLoadNotification
from ..persistence.config import DBSettings
from ..persistence.database import DatabaseConfig, init_database
from ..persistence.errors import PersistenceError
from ..persistence.sink import EventSink

logger = logging.getLogger(__name__)

DEFAULT_TARGET_URL = "https://google.com"
DEFAULT_DWELL_SECONDS = 5.0


@dataclass
class RunnerConfig:
    """Configuration for a capture run."""

    target_url: str = DEFAULT_TARGET_URL
    dwell_seconds: float = DEFAULT_DWELL_SECONDS
    session_timeout_seconds: float = SESSION_TIMEOUT_SECONDS
    listener_workers: int = 4
    fetch_workers: int = 4


@dataclass
class RunSummary:
    """Outcome of a capture run."""

    test_id: uuid.UUID
    requests_captured: int = 0
    responses_captured: int = 0
    bodies_fetched: int = 0
    body_fetch_failures: int = 0
    inserted: int = 0
    insert_failures: int = 0
    navigation_error: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def events_captured(self) -> int:
        return self.requests_captured + self.responses_captured


class CaptureRunner:
    """Runs one capture against the configured target URL."""

    def __init__(
        self,
        config: Optional[RunnerConfig] = None,
        database: Optional[DatabaseConfig] = None,
        session_factory: Optional[Callable[[str, float], BrowserSession]] = None,
    ):
        """Initialize capture runner.

        Args:
            config: Run configuration
            database: Database to write to; built from DB_* variables at run time if omitted
            session_factory: Creates the browser session from (target, timeout)
        """
        self.config = config or RunnerConfig()
        self.database = database
        self.session_factory = session_factory or (
            lambda target, timeout: BrowserSession(target, timeout_seconds=timeout)
        )

    async def run(self) -> RunSummary:
        """Run the capture.

        Returns:
            Summary of what was captured and stored

        Raises:
            SessionError: If the browser session cannot be started
        """
        database = await self._open_database()

        session = self.session_factory(self.config.target_url, self.config.session_timeout_seconds)
        summary = RunSummary(test_id=session.test_id)

        store = EventStore()
        notifications: "asyncio.Queue[Optional[FinishedLoadNotification]]" = asyncio.Queue()
        listener = NetworkEventListener(store, notifications, workers=self.config.listener_workers)
        fetcher = BodyFetcher(session, store, notifications)

        try:
            await session.start()
            listener.attach(session)
            listener.start()
            fetcher.start(workers=self.config.fetch_workers)

            try:
                await session.navigate(self.config.dwell_seconds)
            except SessionError as e:
                logger.error(f"Failed to run browser: {e}")
                summary.navigation_error = str(e)
                summary.errors.append(str(e))
            else:
                logger.info("Browser ran successfully, draining captured events")

            listener.close()
            await listener.drain()
            await fetcher.drain()
            await fetcher.close()

            summary.bodies_fetched = fetcher.fetched
            summary.body_fetch_failures = fetcher.failed

            await self._persist(database, session.test_id, store, summary)

        finally:
            await listener.stop()
            await fetcher.stop()
            await session.cancel()
            if database is not None:
                await database.close()

        logger.info(
            f"Capture run {summary.test_id} finished: "
            f"{summary.requests_captured} requests, {summary.responses_captured} responses, "
            f"{summary.inserted} inserted, {summary.insert_failures} failed"
        )
        return summary

    async def _open_database(self) -> Optional[DatabaseConfig]:
        """Build and bootstrap the database, logging any failure.

        Returns None only when the DB_* settings are unusable; an unreachable
        database is still returned so each insert fails on its own.
        """
        database = self.database
        try:
            if database is None:
                database = DatabaseConfig.from_settings(DBSettings.from_environment())
            await init_database(database)
        except PersistenceError as e:
            logger.error(f"Failed to initialize database: {e}")
        return database

    async def _persist(
        self,
        database: Optional[DatabaseConfig],
        test_id: uuid.UUID,
        store: EventStore,
        summary: RunSummary,
    ) -> None:
        requests = store.requests
        for request in requests:
            request.set_body()
        responses = await store.responses()

        summary.requests_captured = len(requests)
        summary.responses_captured = len(responses)

        events: List[CapturedEvent] = [*requests, *responses]
        if database is None:
            summary.insert_failures = len(events)
            summary.errors.append("No database configured")
            logger.error(f"No database configured, dropping {len(events)} captured events")
            return

        sink = EventSink(database)
        for event in events:
            try:
                await sink.insert(test_id, event)
                summary.inserted += 1
            except PersistenceError as e:
                summary.insert_failures += 1
                summary.errors.append(str(e))
                logger.error(f"Failed to insert {event.kind.value} {event.request_id} into database: {e}")
