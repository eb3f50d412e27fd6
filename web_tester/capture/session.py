"""Browser session driver.

``BrowserSession`` owns one Chromium page for the lifetime of a capture run. It
opens a Chrome DevTools Protocol session on the page to receive network events
and to pull response bodies, and it bounds the whole session with a fixed
safety timeout. Once the session is cancelled, explicitly or by the timeout,
every further browser call raises ``SessionCancelledError``.
"""

import asyncio
import base64
import logging
import uuid
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from playwright.async_api import CDPSession, Error as PlaywrightError, Page
from pydantic import ValidationError

from .browser_factory import BrowserFactory, create_default_factory
from .errors import (
    BodyFetchError,
    NavigationError,
    SessionCancelledError,
    SessionError,
    SessionStateError,
)
from ..models.capture import (
    BrowserEvent,
    CDPModel,
    LoadingFinished,
    RequestPayload,
    ResponsePayload,
)

logger = logging.getLogger(__name__)

SESSION_TIMEOUT_SECONDS = 60.0

# CDP event name -> payload model
NETWORK_EVENTS: Dict[str, Type[CDPModel]] = {
    "Network.requestWillBeSent": RequestPayload,
    "Network.responseReceived": ResponsePayload,
    "Network.loadingFinished": LoadingFinished,
}


class SessionState(str, Enum):
    """Lifecycle states of a browser session."""
    IDLE = "idle"
    ACTIVE = "active"
    CANCELLED = "cancelled"


class BrowserSession:
    """Drives a single page and exposes its network event stream."""

    def __init__(
        self,
        target: str,
        factory: Optional[BrowserFactory] = None,
        timeout_seconds: float = SESSION_TIMEOUT_SECONDS,
    ):
        """Initialize browser session.

        Args:
            target: URL to navigate to
            factory: Browser factory; a headless default is created if omitted
            timeout_seconds: Upper bound on the time the session stays active
        """
        self.target = target
        self.factory = factory or create_default_factory()
        self.timeout_seconds = timeout_seconds
        self.test_id = uuid.uuid4()
        self.state = SessionState.IDLE

        self.page: Optional[Page] = None
        self.cdp: Optional[CDPSession] = None
        self._stack: Optional[AsyncExitStack] = None
        self._deadline: Optional[float] = None
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._closing: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()

    async def start(self) -> None:
        """Launch the browser, open the page and enable network events.

        Raises:
            SessionStateError: If the session was already started
            SessionError: If the browser could not be started
        """
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Cannot start session in state {self.state.value}", self.state.value)

        logger.info(f"Starting browser session {self.test_id} for {self.target}")
        self._stack = AsyncExitStack()

        try:
            await self.factory.start()
            self._stack.push_async_callback(self.factory.stop)
            self.page = await self._stack.enter_async_context(self.factory.page())
            self.cdp = await self.page.context.new_cdp_session(self.page)
            await self.cdp.send("Network.enable")
        except Exception as e:
            logger.error(f"Failed to start browser session: {e}")
            await self._stack.aclose()
            self.state = SessionState.CANCELLED
            raise SessionError(f"Failed to start browser session: {e}") from e

        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + self.timeout_seconds
        self._timeout_handle = loop.call_later(self.timeout_seconds, self._on_timeout)
        self.state = SessionState.ACTIVE
        logger.debug("Browser session active")

    def subscribe(self, callback: Callable[[BrowserEvent], None]) -> None:
        """Deliver typed network events to ``callback``.

        The callback runs on the event loop for every event and must not block.
        """
        if self.cdp is None:
            raise SessionStateError("Session has no CDP connection; call start() first", self.state.value)

        for event_name, model in NETWORK_EVENTS.items():
            self.cdp.on(event_name, self._make_handler(event_name, model, callback))

        logger.debug("Subscribed to network events")

    def _make_handler(
        self,
        event_name: str,
        model: Type[CDPModel],
        callback: Callable[[BrowserEvent], None],
    ) -> Callable[[Dict[str, Any]], None]:
        def handler(params: Dict[str, Any]) -> None:
            try:
                event = model.model_validate(params)
            except ValidationError as e:
                logger.warning(f"Skipping malformed {event_name} event: {e}")
                return
            callback(event)

        return handler

    async def navigate(self, dwell_seconds: float) -> None:
        """Navigate to the target URL, then wait ``dwell_seconds``.

        The dwell period lets asynchronous network activity happen; it is not
        a network-idle signal and its completion is never an error.

        Raises:
            NavigationError: If the navigation itself fails
            SessionCancelledError: If the session is cancelled or times out
        """
        logger.info(f"Navigating to {self.target}")
        await self._call(
            lambda: self.page.goto(self.target, wait_until="load"),
            action="navigate",
            error_factory=lambda message: NavigationError(message, self.target),
        )

        dwell = min(dwell_seconds, self.remaining_seconds)
        if dwell > 0:
            logger.debug(f"Dwelling for {dwell:.1f}s")
            await asyncio.sleep(dwell)

    async def get_response_body(self, request_id: str) -> bytes:
        """Retrieve the complete response body for a request.

        Raises:
            BodyFetchError: If the browser has no body for the request
            SessionCancelledError: If the session is cancelled or times out
        """
        result = await self._call(
            lambda: self.cdp.send("Network.getResponseBody", {"requestId": request_id}),
            action="get_response_body",
            error_factory=lambda message: BodyFetchError(message, request_id),
        )

        body = result.get("body", "")
        if result.get("base64Encoded"):
            return base64.b64decode(body)
        return body.encode("utf-8")

    async def cancel(self) -> None:
        """Cancel the session and release the browser. Safe to call repeatedly."""
        if self.state != SessionState.CANCELLED:
            logger.info(f"Cancelling browser session {self.test_id}")
            self.state = SessionState.CANCELLED

        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        if self._stack is not None:
            stack, self._stack = self._stack, None
            await stack.aclose()

        # A timeout-triggered teardown may still be closing the browser
        closing = self._closing
        if closing is not None and not closing.done() and closing is not asyncio.current_task():
            await closing

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        if self.state == SessionState.ACTIVE:
            logger.warning(f"Browser session timed out after {self.timeout_seconds}s")
            self._closing = asyncio.ensure_future(self.cancel())

    @property
    def remaining_seconds(self) -> float:
        """Seconds left before the safety timeout expires."""
        if self._deadline is None:
            return self.timeout_seconds
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    async def _call(
        self,
        operation: Callable[[], Awaitable[Any]],
        action: str,
        error_factory: Callable[[str], SessionError],
    ) -> Any:
        """Run a browser call bounded by the session deadline."""
        if self.state == SessionState.IDLE:
            raise SessionStateError(f"Cannot {action} before start()", self.state.value)
        if self.state == SessionState.CANCELLED:
            raise SessionCancelledError(f"{action} called on cancelled session", action)

        try:
            return await asyncio.wait_for(operation(), timeout=self.remaining_seconds)
        except asyncio.TimeoutError as e:
            await self.cancel()
            raise SessionCancelledError(
                f"{action} cancelled: session timeout of {self.timeout_seconds}s expired", action
            ) from e
        except PlaywrightError as e:
            if self.state == SessionState.CANCELLED:
                raise SessionCancelledError(f"{action} cancelled: {e}", action) from e
            raise error_factory(f"{action} failed: {e}") from e

    def __repr__(self) -> str:
        return f"BrowserSession(target={self.target}, state={self.state.value}, test_id={self.test_id})"
