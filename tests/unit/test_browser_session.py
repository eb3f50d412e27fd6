"""Unit tests for the browser session driver."""

import asyncio
import base64
import logging
import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from web_tester.capture.errors import (
    BodyFetchError,
    NavigationError,
    SessionCancelledError,
    SessionError,
    SessionStateError,
)
from web_tester.capture.session import BrowserSession, SessionState
from web_tester.models.capture import LoadingFinished, RequestPayload, ResponsePayload


class FakeCDP:
    """Records handlers registered with ``on`` and answers ``send``."""

    def __init__(self):
        self.handlers = {}
        self.send = AsyncMock(return_value={})

    def on(self, event_name, handler):
        self.handlers[event_name] = handler


@pytest.fixture
def cdp():
    """Fake CDP session."""
    return FakeCDP()


@pytest.fixture
def page(cdp):
    """Mock page whose context opens the fake CDP session."""
    page = MagicMock()
    page.goto = AsyncMock()
    page.context.new_cdp_session = AsyncMock(return_value=cdp)
    return page


@pytest.fixture
def factory(page):
    """Mock browser factory yielding the mock page."""
    factory = MagicMock()
    factory.start = AsyncMock()
    factory.stop = AsyncMock()
    factory.page_closed = False

    @asynccontextmanager
    async def page_cm():
        try:
            yield page
        finally:
            factory.page_closed = True

    factory.page = page_cm
    return factory


class TestBrowserSessionLifecycle:
    """Tests for session state transitions."""

    def test_initial_state(self, factory):
        """Test a new session is idle with a fresh test id."""
        session = BrowserSession("https://example.com", factory=factory)

        assert session.state == SessionState.IDLE
        assert isinstance(session.test_id, uuid.UUID)
        assert session.is_active is False
        assert session.remaining_seconds == 60.0

    def test_test_ids_are_unique(self, factory):
        """Test every session gets its own test id."""
        first = BrowserSession("https://example.com", factory=factory)
        second = BrowserSession("https://example.com", factory=factory)

        assert first.test_id != second.test_id

    @pytest.mark.asyncio
    async def test_start_enables_network(self, factory, page, cdp):
        """Test start opens a CDP session and enables network events."""
        session = BrowserSession("https://example.com", factory=factory)

        await session.start()
        try:
            assert session.state == SessionState.ACTIVE
            factory.start.assert_awaited_once()
            page.context.new_cdp_session.assert_awaited_once_with(page)
            cdp.send.assert_awaited_once_with("Network.enable")
        finally:
            await session.cancel()

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self, factory):
        """Test a started session cannot be started again."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        try:
            with pytest.raises(SessionStateError):
                await session.start()
        finally:
            await session.cancel()

    @pytest.mark.asyncio
    async def test_start_failure(self, factory, page):
        """Test a failed start releases resources and raises."""
        page.context.new_cdp_session.side_effect = PlaywrightError("Target closed")
        session = BrowserSession("https://example.com", factory=factory)

        with pytest.raises(SessionError, match="Failed to start browser session"):
            await session.start()

        assert session.state == SessionState.CANCELLED
        assert factory.page_closed is True
        factory.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel_releases_browser(self, factory):
        """Test cancel closes the page and stops the browser once."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()

        await session.cancel()
        await session.cancel()

        assert session.state == SessionState.CANCELLED
        assert factory.page_closed is True
        factory.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_async_context_manager(self, factory):
        """Test the session can be used with async with."""
        async with BrowserSession("https://example.com", factory=factory) as session:
            assert session.is_active

        assert session.state == SessionState.CANCELLED
        factory.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_cancels_idle_session(self, factory):
        """Test the safety timeout cancels the session on its own."""
        session = BrowserSession("https://example.com", factory=factory, timeout_seconds=0.01)
        await session.start()

        await asyncio.sleep(0.05)
        if session._closing is not None:
            await session._closing

        assert session.state == SessionState.CANCELLED
        factory.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel_waits_for_timeout_teardown(self, factory):
        """Test cancel returns only after a timeout-triggered teardown finishes."""
        stopped = asyncio.Event()

        async def slow_stop():
            await asyncio.sleep(0.1)
            stopped.set()

        factory.stop.side_effect = slow_stop
        session = BrowserSession("https://example.com", factory=factory, timeout_seconds=0.01)
        await session.start()

        await asyncio.sleep(0.03)
        assert session._closing is not None
        assert not stopped.is_set()

        await session.cancel()

        assert stopped.is_set()
        assert session._closing.done()
        factory.stop.assert_awaited_once()


class TestBrowserSessionCalls:
    """Tests for navigation and body retrieval."""

    @pytest.mark.asyncio
    async def test_calls_before_start(self, factory):
        """Test browser calls require a started session."""
        session = BrowserSession("https://example.com", factory=factory)

        with pytest.raises(SessionStateError):
            await session.navigate(dwell_seconds=0)
        with pytest.raises(SessionStateError):
            await session.get_response_body("1")
        with pytest.raises(SessionStateError):
            session.subscribe(lambda event: None)

    @pytest.mark.asyncio
    async def test_navigate(self, factory, page):
        """Test navigation loads the target and dwells."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        try:
            await session.navigate(dwell_seconds=0.01)
        finally:
            await session.cancel()

        page.goto.assert_awaited_once_with("https://example.com", wait_until="load")

    @pytest.mark.asyncio
    async def test_navigate_failure(self, factory, page):
        """Test a browser navigation error surfaces as NavigationError."""
        page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        session = BrowserSession("https://bad.invalid", factory=factory)
        await session.start()
        try:
            with pytest.raises(NavigationError) as exc_info:
                await session.navigate(dwell_seconds=0)
        finally:
            await session.cancel()

        assert exc_info.value.details["url"] == "https://bad.invalid"
        assert "ERR_NAME_NOT_RESOLVED" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_navigate_timeout(self, factory, page):
        """Test navigation exceeding the session timeout cancels the session."""
        async def slow_goto(*args, **kwargs):
            await asyncio.sleep(5)

        page.goto.side_effect = slow_goto
        session = BrowserSession("https://example.com", factory=factory, timeout_seconds=0.05)
        await session.start()

        with pytest.raises(SessionCancelledError):
            await session.navigate(dwell_seconds=5)

        assert session.state == SessionState.CANCELLED

    @pytest.mark.asyncio
    async def test_calls_after_cancel(self, factory):
        """Test every call after cancel raises SessionCancelledError."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        await session.cancel()

        with pytest.raises(SessionCancelledError):
            await session.navigate(dwell_seconds=0)
        with pytest.raises(SessionCancelledError) as exc_info:
            await session.get_response_body("1")

        assert exc_info.value.details["action"] == "get_response_body"

    @pytest.mark.asyncio
    async def test_get_response_body_text(self, factory, cdp):
        """Test a text body is returned as UTF-8 bytes."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        cdp.send.return_value = {"body": "héllo", "base64Encoded": False}
        try:
            body = await session.get_response_body("42")
        finally:
            await session.cancel()

        assert body == "héllo".encode("utf-8")
        cdp.send.assert_awaited_with("Network.getResponseBody", {"requestId": "42"})

    @pytest.mark.asyncio
    async def test_get_response_body_base64(self, factory, cdp):
        """Test a base64 body is decoded to its exact bytes."""
        raw = bytes(range(256))
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        cdp.send.return_value = {"body": base64.b64encode(raw).decode(), "base64Encoded": True}
        try:
            body = await session.get_response_body("42")
        finally:
            await session.cancel()

        assert body == raw

    @pytest.mark.asyncio
    async def test_get_response_body_failure(self, factory, cdp):
        """Test a missing body surfaces as BodyFetchError."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        cdp.send.side_effect = PlaywrightError("No resource with given identifier found")
        try:
            with pytest.raises(BodyFetchError) as exc_info:
                await session.get_response_body("42")
        finally:
            await session.cancel()

        assert exc_info.value.details["request_id"] == "42"


class TestBrowserSessionSubscribe:
    """Tests for typed event delivery."""

    @pytest.mark.asyncio
    async def test_events_are_typed(self, factory, cdp, request_params, response_params):
        """Test raw CDP params are delivered as typed events."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        received = []
        try:
            session.subscribe(received.append)

            cdp.handlers["Network.requestWillBeSent"](request_params("1"))
            cdp.handlers["Network.responseReceived"](response_params("1"))
            cdp.handlers["Network.loadingFinished"]({"requestId": "1", "timestamp": 1.0})
        finally:
            await session.cancel()

        assert [type(e) for e in received] == [RequestPayload, ResponsePayload, LoadingFinished]
        assert all(e.request_id == "1" for e in received)

    @pytest.mark.asyncio
    async def test_malformed_event_skipped(self, factory, cdp, caplog):
        """Test events that fail validation are logged and skipped."""
        session = BrowserSession("https://example.com", factory=factory)
        await session.start()
        received = []
        try:
            session.subscribe(received.append)
            with caplog.at_level(logging.WARNING):
                cdp.handlers["Network.responseReceived"]({"requestId": "1"})
        finally:
            await session.cancel()

        assert received == []
        assert "Skipping malformed Network.responseReceived event" in caplog.text
