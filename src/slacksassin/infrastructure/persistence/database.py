"""Database connection management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

# Registers the messages table on SQLModel.metadata.
from slacksassin.domain.entities.message import Message  # noqa: F401

# Seconds SQLite waits on a locked database before failing a write.
SQLITE_BUSY_TIMEOUT = 15


class Database:
    """Async connection manager for the message store.

    Uses SQLModel with aiosqlite. ``sqlite+aiosqlite://`` (no path) opens a
    shared in-memory database that lives as long as the engine.

    Example:
        >>> database = Database("sqlite+aiosqlite:///./data/slacksassin.db")
        >>> await database.initialize()
        >>> async with database.get_session() as session:
        ...     message = await session.get(Message, message_id)
        >>> await database.close()
    """

    def __init__(self, url: str) -> None:
        """Initialize Database with connection URL.

        Args:
            url: SQLAlchemy-style connection URL with an async driver.

        Raises:
            ValueError: If URL is empty or has no async driver.
        """
        if not url:
            raise ValueError("Database URL cannot be empty")

        scheme = urlparse(url).scheme
        if "+" not in scheme:
            raise ValueError(f"Invalid database URL format: {url}")

        self._url = url
        self._is_sqlite = scheme.startswith("sqlite")
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        """Get the connection URL."""
        return self._url

    @property
    def is_memory(self) -> bool:
        """Return True for an in-memory SQLite database."""
        return self._is_sqlite and self._sqlite_path() in ("", ":memory:")

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine.

        Raises:
            RuntimeError: If database is not initialized.
        """
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    async def initialize(self) -> None:
        """Create the engine and the messages table."""
        engine_args: dict[str, Any] = {"echo": False}
        if self._is_sqlite:
            engine_args["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}
            if self.is_memory:
                engine_args["poolclass"] = StaticPool
            else:
                self._ensure_parent_directory()

        self._engine = create_async_engine(self._url, **engine_args)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    def _sqlite_path(self) -> str:
        path = urlparse(self._url).path
        # sqlite+aiosqlite:////abs/path keeps one leading slash
        return path[1:] if path.startswith("/") else path

    def _ensure_parent_directory(self) -> None:
        db_path = self._sqlite_path()
        if db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def close(self) -> None:
        """Close database connection and dispose engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Get a database session.

        Yields:
            AsyncSession: Session committed on success and rolled back on
                exception.

        Raises:
            RuntimeError: If database is not initialized or has been closed.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized or has been closed.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
