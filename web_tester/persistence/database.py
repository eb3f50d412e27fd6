"""Database configuration and connection management for web-tester persistence."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from .config import DBSettings
from .errors import DatabaseConnectionError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class DatabaseConfig:
    """Database configuration and connection management."""

    def __init__(
        self,
        url: Optional[str] = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
    ):
        """Initialize database configuration.

        Args:
            url: Database URL. If None, assembled from DB_* environment variables
            pool_size: Number of connections to maintain in pool
            max_overflow: Maximum overflow connections beyond pool_size
            pool_timeout: Timeout for getting connection from pool
            pool_recycle: Recycle connections after this many seconds
            echo: Enable SQLAlchemy logging
        """
        self.url = url or DBSettings.from_environment().url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.echo = echo

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: DBSettings) -> "DatabaseConfig":
        """Create database configuration from connection settings."""
        settings.validate()
        return cls(url=settings.url, echo=settings.echo)

    def _engine_options(self) -> Dict[str, Any]:
        # SQLite (tests) shares one connection so in-memory data survives
        if self.url.startswith("sqlite"):
            return {"poolclass": StaticPool}

        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": True,
        }

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async database engine."""
        if self._engine is None:
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                **self._engine_options(),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create async session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Create async database session context manager.

        The session commits on clean exit and rolls back on error.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def connect(self) -> None:
        """Verify connectivity.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseConnectionError(f"Failed to connect to the database: {e}") from e

        logger.info("Successfully connected to the database")

    async def init_schema(self) -> None:
        """Create the events table if it does not exist."""
        from .models import Event  # noqa: F401  registers the table on Base.metadata

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseConnectionError(f"Failed to initialize database schema: {e}") from e

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            await self.connect()
            return True
        except DatabaseConnectionError:
            return False

    async def close(self) -> None:
        """Close database engine and connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


async def init_database(config: DatabaseConfig) -> None:
    """Connect to the database and bootstrap the schema.

    Raises:
        DatabaseConnectionError: If the database cannot be reached
    """
    await config.connect()
    await config.init_schema()
