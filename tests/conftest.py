"""Shared test fixtures and configuration for web-tester tests."""

import asyncio
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from web_tester.capture.errors import BodyFetchError, SessionCancelledError
from web_tester.models.capture import (
    BrowserEvent,
    LoadingFinished,
    RequestPayload,
    ResponsePayload,
)


class FakeBrowserSession:
    """In-process stand-in for BrowserSession.

    ``navigate`` replays the configured events through the subscribed callback
    the way the CDP connection would, yielding to the loop between events.
    """

    def __init__(
        self,
        target: str = "https://example.com",
        timeout_seconds: float = 60.0,
        events: Optional[List[BrowserEvent]] = None,
        bodies: Optional[Dict[str, bytes]] = None,
        navigate_error: Optional[Exception] = None,
        body_delay: float = 0.0,
    ):
        self.target = target
        self.timeout_seconds = timeout_seconds
        self.test_id = uuid.uuid4()
        self.events = events or []
        self.bodies = bodies or {}
        self.navigate_error = navigate_error
        self.body_delay = body_delay

        self.started = False
        self.cancelled = False
        self.body_calls: List[str] = []
        self._callback: Optional[Callable[[BrowserEvent], None]] = None

    async def start(self) -> None:
        self.started = True

    def subscribe(self, callback: Callable[[BrowserEvent], None]) -> None:
        self._callback = callback

    def emit(self, event: BrowserEvent) -> None:
        self._callback(event)

    async def navigate(self, dwell_seconds: float) -> None:
        if self.navigate_error is not None:
            raise self.navigate_error
        for event in self.events:
            self.emit(event)
            await asyncio.sleep(0)

    async def get_response_body(self, request_id: str) -> bytes:
        if self.cancelled:
            raise SessionCancelledError("get_response_body called on cancelled session", "get_response_body")
        self.body_calls.append(request_id)
        if self.body_delay:
            await asyncio.sleep(self.body_delay)
        if request_id not in self.bodies:
            raise BodyFetchError(f"No resource with given identifier found: {request_id}", request_id)
        return self.bodies[request_id]

    async def cancel(self) -> None:
        self.cancelled = True


def _request_params(
    request_id: str,
    url: str = "https://example.com/",
    method: str = "GET",
    post_data: Optional[List[str]] = None,
) -> Dict[str, Any]:
    request: Dict[str, Any] = {
        "url": url,
        "method": method,
        "headers": {"User-Agent": "Test"},
    }
    if post_data is not None:
        request["hasPostData"] = True
        request["postDataEntries"] = [{"bytes": chunk} for chunk in post_data]

    return {
        "requestId": request_id,
        "loaderId": "loader-1",
        "documentURL": "https://example.com/",
        "request": request,
        "timestamp": 1000.5,
        "wallTime": 1700000000.25,
        "initiator": {"type": "other"},
        "type": "Document",
    }


def _response_params(
    request_id: str,
    url: str = "https://example.com/",
    status: int = 200,
) -> Dict[str, Any]:
    return {
        "requestId": request_id,
        "loaderId": "loader-1",
        "timestamp": 1001.0,
        "type": "Document",
        "response": {
            "url": url,
            "status": status,
            "statusText": "OK",
            "headers": {"content-type": "text/html"},
            "mimeType": "text/html",
            "protocol": "h2",
            "remoteIPAddress": "93.184.216.34",
        },
        "hasExtraInfo": False,
    }


@pytest.fixture
def request_params() -> Callable[..., Dict[str, Any]]:
    """Builder for Network.requestWillBeSent params."""
    return _request_params


@pytest.fixture
def response_params() -> Callable[..., Dict[str, Any]]:
    """Builder for Network.responseReceived params."""
    return _response_params


@pytest.fixture
def make_request() -> Callable[..., RequestPayload]:
    """Builder for typed request events."""
    def make(request_id: str, **kwargs) -> RequestPayload:
        return RequestPayload.model_validate(_request_params(request_id, **kwargs))
    return make


@pytest.fixture
def make_response() -> Callable[..., ResponsePayload]:
    """Builder for typed response events."""
    def make(request_id: str, **kwargs) -> ResponsePayload:
        return ResponsePayload.model_validate(_response_params(request_id, **kwargs))
    return make


@pytest.fixture
def make_finished() -> Callable[[str], LoadingFinished]:
    """Builder for typed loading-finished events."""
    def make(request_id: str) -> LoadingFinished:
        return LoadingFinished.model_validate({
            "requestId": request_id,
            "timestamp": 1002.0,
            "encodedDataLength": 512,
        })
    return make


@pytest.fixture
def fake_session_class():
    """The fake browser session class."""
    return FakeBrowserSession


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
