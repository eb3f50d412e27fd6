"""Exceptions raised by the persistence layer."""

from typing import Optional


class PersistenceError(Exception):
    """Base error for storage failures."""

    def __init__(
        self,
        message: str = "Persistence error",
        error_code: str = "persistence_error",
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidEventURLError(PersistenceError):
    """Raised when an event's URL cannot be parsed into a hostname."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="invalid_url",
            details={"url": url} if url is not None else {}
        )


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be reached."""

    def __init__(self, message: str = "Failed to connect to the database"):
        super().__init__(message=message, error_code="connection_failed")


class DatabaseSettingsError(PersistenceError):
    """Raised when the DB_* environment settings are invalid."""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="invalid_settings",
            details={"setting": setting} if setting else {}
        )
