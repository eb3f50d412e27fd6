"""Network event listener for the capture pipeline.

This module provides the NetworkEventListener class that receives the typed
event stream of a browser session, classifies each event and routes it: request
events are appended to the event store, response events are upserted into it,
and loading-finished events become notifications for the body fetcher.

The browser callback only enqueues. A fixed pool of worker tasks performs the
store writes, so a slow write never stalls event delivery and the amount of
concurrent work stays bounded.
"""

import asyncio
import logging
from typing import List, Optional

from .event_store import EventStore
from ..models.capture import (
    BrowserEvent,
    CapturedRequest,
    CapturedResponse,
    FinishedLoadNotification,
    LoadingFinished,
    RequestPayload,
    ResponsePayload,
)

logger = logging.getLogger(__name__)


class NetworkEventListener:
    """Classifies browser network events and dispatches them."""

    def __init__(
        self,
        store: EventStore,
        notifications: "asyncio.Queue[Optional[FinishedLoadNotification]]",
        workers: int = 4,
    ):
        """Initialize network event listener.

        Args:
            store: Event store receiving captured requests and responses
            notifications: Queue read by the body fetcher
            workers: Number of concurrent event-processing tasks
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.store = store
        self.notifications = notifications
        self.workers = workers

        self._events: "asyncio.Queue[BrowserEvent]" = asyncio.Queue()
        self._tasks: List[asyncio.Task] = []
        self._closed = False
        self.dropped = 0

    def attach(self, session) -> None:
        """Subscribe to a browser session's event stream."""
        session.subscribe(self.dispatch)

    def dispatch(self, event: BrowserEvent) -> None:
        """Accept an event from the browser without blocking."""
        if self._closed:
            self.dropped += 1
            logger.debug(f"Listener closed, dropping event for request {event.request_id}")
            return
        self._events.put_nowait(event)

    def start(self) -> None:
        """Spawn the worker tasks."""
        if self._tasks:
            logger.warning("Network event listener already started")
            return

        for index in range(self.workers):
            self._tasks.append(
                asyncio.create_task(self._worker(), name=f"network-listener-{index}")
            )
        logger.debug(f"Network event listener started with {self.workers} workers")

    def close(self) -> None:
        """Stop accepting new events. Queued events are still processed."""
        self._closed = True

    async def drain(self) -> None:
        """Wait until every accepted event has been handled."""
        await self._events.join()

    async def stop(self) -> None:
        """Cancel the worker tasks."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def _worker(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.handle(event)
            except Exception as e:
                logger.error(f"Error handling event for request {event.request_id}: {e}")
            finally:
                self._events.task_done()

    async def handle(self, event: BrowserEvent) -> None:
        """Route a single event by its concrete type."""
        if isinstance(event, RequestPayload):
            logger.info(f"Request will be sent: request_id={event.request_id} url={event.url}")
            self.store.add_request(CapturedRequest.from_event(event))

        elif isinstance(event, ResponsePayload):
            logger.info(
                f"Response received: request_id={event.request_id} "
                f"status={event.response.status} url={event.url}"
            )
            await self.store.add_response(CapturedResponse.from_event(event))

        elif isinstance(event, LoadingFinished):
            logger.info(f"Loading finished: request_id={event.request_id}")
            await self.notifications.put(FinishedLoadNotification(request_id=event.request_id))

        else:
            logger.warning(f"Ignoring unsupported event type: {type(event).__name__}")

    @property
    def pending(self) -> int:
        """Number of accepted events not yet handled."""
        return self._events.qsize()

    def __repr__(self) -> str:
        return (
            f"NetworkEventListener(workers={self.workers}, "
            f"pending={self.pending}, closed={self._closed})"
        )
