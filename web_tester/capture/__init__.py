"""Browser network capture for web-tester.

Main Components:
- Browser Factory: Playwright Chromium lifecycle (browser_factory.py)
- Browser Session: navigation, safety timeout and CDP event stream (session.py)
- Event Store: captured requests and lock-protected responses (event_store.py)
- Network Event Listener: classifies and dispatches browser events (network_listener.py)
- Body Fetcher: pulls response bodies for finished loads (body_fetcher.py)

Usage:
    from web_tester.capture import BrowserSession, EventStore

    async with BrowserSession("https://example.com") as session:
        ...
"""

__all__ = [
    "BodyFetcher",
    "BodyFetchError",
    "BrowserFactory",
    "BrowserOptions",
    "BrowserSession",
    "EventStore",
    "NavigationError",
    "NetworkEventListener",
    "SESSION_TIMEOUT_SECONDS",
    "SessionCancelledError",
    "SessionError",
    "SessionState",
    "SessionStateError",
    "create_default_factory",
]

from .body_fetcher import BodyFetcher
from .browser_factory import BrowserFactory, BrowserOptions, create_default_factory
from .errors import (
    BodyFetchError,
    NavigationError,
    SessionCancelledError,
    SessionError,
    SessionStateError,
)
from .event_store import EventStore
from .network_listener import NetworkEventListener
from .session import SESSION_TIMEOUT_SECONDS, BrowserSession, SessionState
