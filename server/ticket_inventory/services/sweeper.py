"""Best-effort deletion of expired holds."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, system_clock
from ..core.locking import store_write_lock
from ..core.observability import metrics_collector
from ..models.hold import Hold

logger = logging.getLogger(__name__)


class HoldSweeper:
    """
    Removes holds whose ``held_until`` has passed.

    Nothing depends on this for correctness: every read and reservation
    already ignores expired holds. Sweeping only keeps the table small.
    """

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    async def sweep_event(self, event_id: str) -> int:
        """Delete expired holds of one event."""
        stmt = delete(Hold).where(
            Hold.event_id == event_id,
            Hold.held_until <= self.clock.now(),
        )
        async with store_write_lock(self.db):
            try:
                result = await self.db.execute(stmt)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        swept = result.rowcount or 0
        if swept:
            metrics_collector.record_holds_swept(swept)
            logger.info(
                "Swept expired holds",
                extra={"event_id": event_id, "swept": swept}
            )
        return swept

    async def sweep_all(self, batch_size: int = 500) -> int:
        """
        Delete expired holds across all events, ``batch_size`` rows per commit.

        Returns:
            Total number of holds deleted
        """
        total = 0
        while True:
            now = self.clock.now()
            ids_stmt = (
                select(Hold.id)
                .where(Hold.held_until <= now)
                .order_by(Hold.held_until)
                .limit(batch_size)
            )
            result = await self.db.execute(ids_stmt)
            expired_ids = list(result.scalars())
            if not expired_ids:
                break

            async with store_write_lock(self.db):
                try:
                    # Re-check expiry in case a hold was refreshed since the select
                    deleted = await self.db.execute(
                        delete(Hold).where(Hold.id.in_(expired_ids), Hold.held_until <= now)
                    )
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise
            total += deleted.rowcount or 0

            if len(expired_ids) < batch_size:
                break

        if total:
            metrics_collector.record_holds_swept(total)
            logger.info("Swept expired holds across events", extra={"swept": total})
        return total


async def sweep_event_quietly(
    session_factory: async_sessionmaker[AsyncSession],
    event_id: str,
    clock: Clock = system_clock,
) -> None:
    """
    Sweep one event in its own session. Failures are logged, never raised.

    Runs as a background task after availability reads.
    """
    try:
        async with session_factory() as session:
            await HoldSweeper(session, clock).sweep_event(event_id)
    except Exception as e:
        metrics_collector.record_sweep_failure()
        logger.warning(
            "Expired hold sweep failed",
            extra={"event_id": event_id, "error": str(e)}
        )
