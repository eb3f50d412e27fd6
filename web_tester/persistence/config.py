"""Configuration management for the persistence layer."""

import os
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import URL

from .errors import DatabaseSettingsError

ASYNC_DRIVER = "postgresql+psycopg_async"


def get_env(key: str, default: str) -> str:
    """Return the environment variable ``key`` or ``default`` when unset."""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _parse_port(value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise DatabaseSettingsError(f"Invalid database port: {value!r}", "DB_PORT") from e


@dataclass
class DBSettings:
    """Connection settings for the events database."""

    host: str = "localhost"
    port: int = 5432
    user: str = "myuser"
    password: str = "mypassword"
    dbname: str = "events"
    url_override: Optional[str] = None
    echo: bool = False

    @classmethod
    def from_environment(cls) -> "DBSettings":
        """Create settings from environment variables."""
        return cls(
            host=get_env("DB_HOST", "localhost"),
            port=_parse_port(get_env("DB_PORT", "5432")),
            user=get_env("DB_USER", "myuser"),
            password=get_env("DB_PASSWORD", "mypassword"),
            dbname=get_env("DB_NAME", "events"),
            url_override=os.getenv("DATABASE_URL") or None,
            echo=get_env("DB_ECHO", "false").lower() == "true",
        )

    @property
    def url(self) -> str:
        """SQLAlchemy URL using the async psycopg driver."""
        if self.url_override:
            url = self.url_override
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", f"{ASYNC_DRIVER}://", 1)
            elif url.startswith("postgresql+psycopg://"):
                url = url.replace("postgresql+psycopg://", f"{ASYNC_DRIVER}://", 1)
            return url

        return URL.create(
            ASYNC_DRIVER,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.dbname,
        ).render_as_string(hide_password=False)

    def validate(self) -> None:
        """Validate configuration settings.

        Raises:
            DatabaseSettingsError: If a setting is out of range or empty
        """
        if not 0 < self.port < 65536:
            raise DatabaseSettingsError(f"Invalid database port: {self.port}", "DB_PORT")

        if not self.dbname:
            raise DatabaseSettingsError("Database name must not be empty", "DB_NAME")

    def __repr__(self) -> str:
        return (
            f"DBSettings(host={self.host}, port={self.port}, "
            f"user={self.user}, dbname={self.dbname})"
        )
