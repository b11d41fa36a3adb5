"""Sold counts derived from finalized orders."""

import logging
from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.units import UnitType, seat_unit_id
from ..models.event import TicketTier
from ..models.order import FINALIZED_ORDER_STATUSES, Order, OrderItem

logger = logging.getLogger(__name__)

# GA line items recorded without a ticket type were sold as general admission
DEFAULT_TICKET_TYPE = "general"


class SoldLedger:
    """
    Reads sold quantities per unit from the order tables.

    Order line items address GA tiers by id or by display name, and seats by
    coordinates. Both are mapped onto the unit id space used by holds and
    blocks before they are returned.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def sold_by_unit(
        self,
        event_id: str,
        unit_type: UnitType,
        tiers: list[TicketTier] | None = None,
    ) -> dict[str, int]:
        if unit_type == UnitType.GA:
            return await self._sold_tiers(event_id, tiers or [])
        return await self._sold_seats(event_id)

    def _finalized_items(self, event_id: str, *columns):
        return (
            select(*columns, func.sum(OrderItem.quantity))
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                Order.event_id == event_id,
                Order.status.in_(FINALIZED_ORDER_STATUSES),
            )
            .group_by(*columns)
        )

    async def _sold_tiers(self, event_id: str, tiers: list[TicketTier]) -> dict[str, int]:
        # Storefront orders may record the tier name rather than its id
        lookup: dict[str, str] = {}
        for tier in tiers:
            lookup.setdefault(tier.name.strip().lower(), tier.id)
        for tier in tiers:
            lookup[tier.id.strip().lower()] = tier.id

        stmt = self._finalized_items(event_id, OrderItem.ticket_type).where(
            OrderItem.seat_section_id.is_(None)
        )
        result = await self.db.execute(stmt)

        sold: dict[str, int] = defaultdict(int)
        for ticket_type, quantity in result.all():
            ticket_type = (ticket_type or "").strip() or DEFAULT_TICKET_TYPE
            tier_id = lookup.get(ticket_type.lower())
            if tier_id is None:
                logger.debug(
                    "Ignoring sold items for unknown ticket type",
                    extra={"event_id": event_id, "ticket_type": ticket_type}
                )
                continue
            sold[tier_id] += int(quantity or 0)
        return dict(sold)

    async def _sold_seats(self, event_id: str) -> dict[str, int]:
        stmt = self._finalized_items(
            event_id,
            OrderItem.seat_section_id,
            OrderItem.seat_row,
            OrderItem.seat_number,
        ).where(OrderItem.seat_section_id.is_not(None))
        result = await self.db.execute(stmt)

        sold: dict[str, int] = defaultdict(int)
        for section_id, row, number, quantity in result.all():
            try:
                unit_id = seat_unit_id(section_id, row, number)
            except ValueError:
                logger.warning(
                    "Skipping sold seat with malformed coordinates",
                    extra={"event_id": event_id, "section_id": section_id, "row": row, "number": number}
                )
                continue
            sold[unit_id] += int(quantity or 0)
        return dict(sold)
