"""Capacity source: event configuration as seen by the reservation path."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.units import UnitType
from ..models.event import Event, Seat, TicketTier

logger = logging.getLogger(__name__)


class CapacityService:
    """Read-only access to events, ticket tiers and seats."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_event(self, event_id: str) -> Event | None:
        stmt = select(Event).where(Event.id == event_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_event_or_raise(self, event_id: str) -> Event:
        """
        Get event by ID or raise NotFoundError.

        Args:
            event_id: Event ID to search for

        Returns:
            Event entity

        Raises:
            NotFoundError: If event not found
        """
        event = await self.get_event(event_id)
        if not event:
            logger.warning("Event not found", extra={"event_id": event_id})
            raise NotFoundError(resource_type="event", resource_id=event_id)
        return event

    async def get_tiers(self, event_id: str) -> list[TicketTier]:
        stmt = (
            select(TicketTier)
            .where(TicketTier.event_id == event_id)
            .order_by(TicketTier.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_seats(self, event_id: str) -> list[Seat]:
        stmt = (
            select(Seat)
            .where(Seat.event_id == event_id)
            .order_by(Seat.seat_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_unit_capacities(self, event_id: str, unit_type: UnitType) -> dict[str, int]:
        """Configured capacity per unit id. Seats always have capacity one."""
        if unit_type == UnitType.GA:
            return {tier.id: tier.capacity for tier in await self.get_tiers(event_id)}
        return {seat.seat_id: 1 for seat in await self.get_seats(event_id)}

    @staticmethod
    def event_ceiling(event: Event, capacities: dict[str, int]) -> int:
        """
        Aggregate ceiling for the event.

        ``total_capacity`` wins whenever it is configured, even when it is
        lower than the sum of the unit capacities.
        """
        if event.total_capacity is not None:
            return event.total_capacity
        return sum(capacities.values())
