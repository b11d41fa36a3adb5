"""Database configuration and async session management."""

import asyncio
import weakref
from contextlib import asynccontextmanager, nullcontext
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings


def _engine_options(database_url: str) -> dict:
    if "sqlite" in database_url:
        options = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        if ":memory:" in database_url or "mode=memory" in database_url:
            # An in-memory database only lives as long as its one connection
            options["poolclass"] = StaticPool
        return options
    return {"pool_pre_ping": True}


class StoreWriteLock:
    """
    Task-reentrant lock serializing write transactions on one SQLite engine.

    SQLite admits a single writer, and an in-memory database shares one
    connection between every session, so a commit or rollback issued by any
    session ends whatever transaction is open on it.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        task = asyncio.current_task()
        if task is not None and self._owner is task:
            yield
            return

        async with self._lock:
            self._owner = task
            try:
                yield
            finally:
                self._owner = None


_write_locks: "weakref.WeakKeyDictionary[Engine, StoreWriteLock]" = weakref.WeakKeyDictionary()


def write_lock_for(session: AsyncSession) -> StoreWriteLock:
    """The write lock of the engine a session is bound to."""
    engine = session.bind.sync_engine
    lock = _write_locks.get(engine)
    if lock is None:
        lock = StoreWriteLock()
        _write_locks[engine] = lock
    return lock


class InventorySession(AsyncSession):
    """
    Async session whose transaction boundaries never interleave on SQLite.

    Commit, rollback and close take the engine's write lock unless the
    current task already holds it. On PostgreSQL they behave as usual.
    """

    def _serialized(self):
        if self.bind is None or is_postgresql(self):
            return nullcontext()
        return write_lock_for(self).hold()

    async def commit(self) -> None:
        async with self._serialized():
            await super().commit()

    async def rollback(self) -> None:
        async with self._serialized():
            await super().rollback()

    async def close(self) -> None:
        async with self._serialized():
            await super().close()


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=InventorySession,
    expire_on_commit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Alias for FastAPI dependency injection
get_db = get_async_session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives the request session (background sweeps)."""
    return async_session_factory


def is_postgresql(session: AsyncSession) -> bool:
    """Return True if the session is bound to a PostgreSQL engine."""
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
