"""Per-event serialization and bounded retry for inventory transactions."""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import is_postgresql, write_lock_for
from .exceptions import TransientError
from .observability import metrics_collector

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


@asynccontextmanager
async def event_transaction_lock(session: AsyncSession, event_id: str) -> AsyncIterator[None]:
    """
    Serialize inventory writes for one event.

    On PostgreSQL the transaction runs READ COMMITTED and takes a
    transaction-scoped advisory lock, released on commit or rollback. Every
    statement after the lock sees what earlier lock holders committed. SQLite
    has a single writer, so there the engine's write lock is held instead and
    the caller must commit or roll back before leaving the block.
    """
    if is_postgresql(session):
        if not session.in_transaction():
            await session.connection(execution_options={"isolation_level": "READ COMMITTED"})
        await session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:event_id))"),
            {"event_id": event_id},
        )
        logger.debug("Acquired advisory lock for event", extra={"event_id": event_id})
        yield
        return

    async with write_lock_for(session).hold():
        logger.debug("Acquired store write lock", extra={"event_id": event_id})
        yield


@asynccontextmanager
async def store_write_lock(session: AsyncSession) -> AsyncIterator[None]:
    """
    Serialize a write that needs no event lock, such as a delete of holds.

    Deletes commute, so PostgreSQL needs nothing here.
    """
    if is_postgresql(session):
        yield
        return

    async with write_lock_for(session).hold():
        yield


def is_retryable_error(exc: DBAPIError) -> bool:
    """True for serialization failures, deadlocks and SQLite lock timeouts."""
    candidates = [exc.orig, getattr(exc.orig, "__cause__", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code in RETRYABLE_SQLSTATES:
            return True
    return "database is locked" in str(exc.orig).lower()


async def run_with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    session: AsyncSession,
    operation_name: str,
    max_attempts: int,
    base_delay_ms: int,
) -> T:
    """
    Run ``operation`` until it commits or the attempt budget is spent.

    Only retryable database errors are retried; the session is rolled back
    between attempts. Exhaustion surfaces as :class:`TransientError`.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except DBAPIError as exc:
            await session.rollback()
            if not is_retryable_error(exc):
                raise

            metrics_collector.record_transaction_retry(operation_name)
            logger.warning(
                "Inventory transaction aborted by contention",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "error": str(exc.orig),
                }
            )
            if attempt == max_attempts:
                raise TransientError(
                    detail=f"{operation_name} could not complete after {max_attempts} attempts",
                    attempts=max_attempts,
                ) from exc

            delay = (base_delay_ms / 1000.0) * (2 ** (attempt - 1))
            await asyncio.sleep(delay + random.uniform(0, delay))

    # max_attempts >= 1 is enforced by settings
    raise TransientError(attempts=max_attempts)
