"""Response body fetcher.

Consumes finished-load notifications, pulls the complete response body from
the browser session and merges it into the event store. Failures are logged
and the notification is dropped; nothing is retried.
"""

import asyncio
import logging
from typing import List, Optional

from .errors import SessionError
from .event_store import EventStore
from ..models.capture import FinishedLoadNotification

logger = logging.getLogger(__name__)


class BodyFetcher:
    """Fetches response bodies for finished loads."""

    def __init__(
        self,
        session,
        store: EventStore,
        notifications: "asyncio.Queue[Optional[FinishedLoadNotification]]",
    ):
        """Initialize body fetcher.

        Args:
            session: Browser session providing ``get_response_body``
            store: Event store holding the responses to update
            notifications: Queue of finished-load notifications; ``None`` closes it
        """
        self.session = session
        self.store = store
        self.notifications = notifications

        self._tasks: List[asyncio.Task] = []
        self.fetched = 0
        self.failed = 0

    async def fetch_and_store(self, request_id: str) -> bytes:
        """Fetch the body for ``request_id`` and store it on its response.

        Raises:
            BodyFetchError: If the body is not available
            SessionCancelledError: If the session is no longer active
        """
        body = await self.session.get_response_body(request_id)
        await self.store.set_response_body(request_id, body)
        return body

    async def watch(self) -> None:
        """Process notifications until the queue is closed."""
        while True:
            notification = await self.notifications.get()
            try:
                if notification is None:
                    return
                await self._process(notification)
            except Exception as e:
                self.failed += 1
                logger.error(f"Unexpected error fetching body for request {notification.request_id}: {e}")
            finally:
                self.notifications.task_done()

    async def _process(self, notification: FinishedLoadNotification) -> None:
        request_id = notification.request_id
        current = await self.store.get_response(request_id)
        initial_length = len(current.body) if current else 0
        logger.info(
            f"Loading finished, getting body: request_id={request_id} "
            f"initial_length={initial_length}"
        )

        try:
            body = await self.fetch_and_store(request_id)
        except SessionError as e:
            self.failed += 1
            logger.error(f"Failed to get response body for request {request_id}: {e}")
            return

        self.fetched += 1
        logger.debug(f"Stored response body: request_id={request_id} length={len(body)}")

    def start(self, workers: int = 1) -> None:
        """Run ``workers`` watch loops in the background."""
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if self._tasks:
            logger.warning("Body fetcher already started")
            return

        logger.debug("Watching for finished loads")
        for index in range(workers):
            self._tasks.append(
                asyncio.create_task(self.watch(), name=f"body-fetcher-{index}")
            )

    async def drain(self) -> None:
        """Wait until every queued notification has been processed."""
        await self.notifications.join()

    async def close(self) -> None:
        """Close the queue and wait for the watch loops to exit."""
        for _ in self._tasks:
            await self.notifications.put(None)
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def stop(self) -> None:
        """Cancel the watch loops without waiting for queued work."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    def __repr__(self) -> str:
        return f"BodyFetcher(fetched={self.fetched}, failed={self.failed}, workers={len(self._tasks)})"
