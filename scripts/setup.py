#!/usr/bin/env python3
"""Setup script for the ticket inventory API: migrate, then seed a sample event."""

import asyncio
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from ticket_inventory.core.database import async_session_factory, close_db
from ticket_inventory.core.units import seat_unit_id
from ticket_inventory.models import Event, Seat, SeatingType, TicketTier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_GA_EVENT_ID = "summer-fest-2026"
SAMPLE_SEATED_EVENT_ID = "symphony-night-2026"


def setup_database() -> None:
    """Bring the schema up to the latest migration."""
    logger.info("Running database migrations...")
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create one GA event and one reserved-seating event."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = await db.execute(select(func.count()).select_from(Event))
            if existing.scalar() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            db.add(Event(
                id=SAMPLE_GA_EVENT_ID,
                name="Summer Fest 2026",
                seating_type=SeatingType.GENERAL.value,
                total_capacity=1000,
            ))
            db.add_all([
                TicketTier(event_id=SAMPLE_GA_EVENT_ID, id="general", name="General Admission", capacity=800),
                TicketTier(event_id=SAMPLE_GA_EVENT_ID, id="vip", name="VIP", capacity=250),
            ])

            db.add(Event(
                id=SAMPLE_SEATED_EVENT_ID,
                name="Symphony Night",
                seating_type=SeatingType.RESERVED.value,
            ))
            for section_id, section_name in (("orch", "Orchestra"), ("balc", "Balcony")):
                for row in "ABCDE":
                    for number in range(1, 13):
                        db.add(Seat(
                            event_id=SAMPLE_SEATED_EVENT_ID,
                            seat_id=seat_unit_id(section_id, row, number),
                            section_id=section_id,
                            section_name=section_name,
                            row=row,
                            number=str(number),
                        ))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise

    await close_db()


def main() -> None:
    """Main setup function."""
    logger.info("Starting ticket inventory API setup...")

    setup_database()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn ticket_inventory.main:app --reload")


if __name__ == "__main__":
    main()
