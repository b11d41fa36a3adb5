"""Background worker for sweeping expired holds."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, system_clock
from ..core.database import async_session_factory
from ..core.observability import metrics_collector
from ..services.sweeper import HoldSweeper
from .base import BaseWorker

logger = logging.getLogger(__name__)


class HoldExpiryWorker(BaseWorker):
    """
    Background worker that deletes holds past their ``held_until``.

    Expired holds already stop counting the moment they expire; this only
    keeps the holds table from growing.
    """

    def __init__(
        self,
        interval_seconds: int = 60,
        batch_size: int = 500,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        clock: Clock = system_clock,
    ):
        """
        Initialize the hold expiry worker.

        Args:
            interval_seconds: How often to sweep (default: 60s)
            batch_size: Holds deleted per commit
            session_factory: Source of database sessions
            clock: Time source for expiry comparisons
        """
        super().__init__(name="HoldExpiry", interval_seconds=interval_seconds)
        self.batch_size = batch_size
        self.session_factory = session_factory
        self.clock = clock

    async def process(self) -> None:
        """Sweep expired holds across all events."""
        async with self.session_factory() as db:
            try:
                swept = await HoldSweeper(db, self.clock).sweep_all(self.batch_size)
            except Exception as e:
                await db.rollback()
                metrics_collector.record_sweep_failure()
                logger.error(
                    f"Error sweeping expired holds: {e!s}",
                    exc_info=True,
                    extra={"worker": self.name}
                )
                raise

        if swept:
            logger.info(
                f"Swept {swept} expired holds",
                extra={"swept": swept, "worker": self.name}
            )
