"""Exceptions raised by the browser capture layer."""

from typing import Optional


class SessionError(Exception):
    """Base error for browser session failures."""

    def __init__(
        self,
        message: str = "Browser session error",
        error_code: str = "session_error",
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class SessionStateError(SessionError):
    """Raised when an operation is invalid for the session's current state."""

    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="invalid_state",
            details={"state": state} if state else {}
        )


class SessionCancelledError(SessionError):
    """Raised for browser calls made after the session was cancelled or timed out."""

    def __init__(self, message: str = "Browser session cancelled", action: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="session_cancelled",
            details={"action": action} if action else {}
        )


class NavigationError(SessionError):
    """Raised when navigating to the target URL fails."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="navigation_failed",
            details={"url": url} if url else {}
        )


class BodyFetchError(SessionError):
    """Raised when a response body cannot be retrieved."""

    def __init__(self, message: str, request_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="body_fetch_failed",
            details={"request_id": request_id} if request_id else {}
        )
