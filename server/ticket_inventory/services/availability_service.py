"""Availability calculator for GA tiers and reserved seats."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.units import UnitType, parse_seat_unit_id
from ..models.event import Event, Seat
from ..models.hold import Hold
from ..models.inventory import InventoryBlock
from .capacity_service import CapacityService
from .sold_ledger import SoldLedger

logger = logging.getLogger(__name__)


@dataclass
class UnitAvailability:
    """Consumption of one sellable unit at a point in time."""

    unit_id: str
    capacity: int
    sold: int = 0
    blocked: int = 0
    held: int = 0

    @property
    def consumed(self) -> int:
        return self.sold + self.blocked + self.held

    @property
    def available(self) -> int:
        return max(0, self.capacity - self.consumed)


@dataclass
class InventorySnapshot:
    """Per-unit and aggregate availability of one unit type for an event."""

    event_id: str
    unit_type: UnitType
    ceiling: int
    taken_at: datetime
    units: dict[str, UnitAvailability] = field(default_factory=dict)

    @property
    def total_sold(self) -> int:
        return sum(unit.sold for unit in self.units.values())

    @property
    def total_blocked(self) -> int:
        return sum(unit.blocked for unit in self.units.values())

    @property
    def total_held(self) -> int:
        return sum(unit.held for unit in self.units.values())

    @property
    def total_available(self) -> int:
        return max(0, self.ceiling - self.total_sold - self.total_blocked - self.total_held)


@dataclass
class SeatHoldView:
    """A live seat hold as shown to the session that owns it."""

    seat_id: str
    section_id: str
    section_name: str | None
    row: str
    number: str
    held_until: datetime
    created_at: datetime


@dataclass
class SeatAvailability:
    sold_seats: list[str]
    held_seats: list[str]
    blocked_seats: list[str]
    my_holds: list[SeatHoldView]


class AvailabilityService:
    """
    Derives availability from capacity, finalized orders, admin blocks and
    live holds.

    Reads here are snapshots for display. The hold service calls
    :meth:`snapshot` again under the event lock before deciding anything.
    """

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock
        self.capacity_service = CapacityService(db)
        self.sold_ledger = SoldLedger(db)

    async def get_event_availability(self, event_id: str) -> InventorySnapshot:
        """
        Availability of every GA tier of an event plus event totals.

        Raises:
            NotFoundError: If event not found
        """
        event = await self.capacity_service.get_event_or_raise(event_id)
        snapshot = await self.snapshot(event, UnitType.GA)

        logger.info(
            "Event availability computed",
            extra={
                "event_id": event_id,
                "total_capacity": snapshot.ceiling,
                "total_sold": snapshot.total_sold,
                "total_blocked": snapshot.total_blocked,
                "total_held": snapshot.total_held,
                "total_available": snapshot.total_available,
            }
        )
        return snapshot

    async def get_seat_availability(self, event_id: str, session_id: str | None = None) -> SeatAvailability:
        """
        Sold, held and blocked seat ids for an event, plus the caller's holds.

        Held seats include seats held by ``session_id`` itself.
        """
        await self.capacity_service.get_event_or_raise(event_id)
        now = self.clock.now()

        sold = await self.sold_ledger.sold_by_unit(event_id, UnitType.RESERVED)
        blocked = await self.blocked_by_unit(event_id, UnitType.RESERVED)

        stmt = (
            select(Hold)
            .where(
                Hold.event_id == event_id,
                Hold.unit_type == UnitType.RESERVED.value,
                Hold.held_until > now,
            )
            .order_by(Hold.created_at, Hold.unit_id)
        )
        result = await self.db.execute(stmt)
        live_holds = list(result.scalars())

        my_holds = []
        if session_id:
            mine = [hold for hold in live_holds if hold.session_id == session_id]
            section_names = await self._section_names(event_id, [hold.unit_id for hold in mine])
            my_holds = [self._seat_hold_view(hold, section_names.get(hold.unit_id)) for hold in mine]

        return SeatAvailability(
            sold_seats=sorted(unit_id for unit_id, quantity in sold.items() if quantity > 0),
            held_seats=list(dict.fromkeys(hold.unit_id for hold in live_holds)),
            blocked_seats=sorted(blocked),
            my_holds=my_holds,
        )

    async def snapshot(
        self,
        event: Event,
        unit_type: UnitType,
        exclude_session_id: str | None = None,
    ) -> InventorySnapshot:
        """
        Compute availability for every configured unit of ``unit_type``.

        Holds belonging to ``exclude_session_id`` are left out, which is how a
        session's own holds stop counting against its replacement request.
        """
        now = self.clock.now()

        tiers = await self.capacity_service.get_tiers(event.id) if unit_type == UnitType.GA else None
        if tiers is not None:
            capacities = {tier.id: tier.capacity for tier in tiers}
        else:
            capacities = await self.capacity_service.get_unit_capacities(event.id, unit_type)

        sold = await self.sold_ledger.sold_by_unit(event.id, unit_type, tiers)
        blocked = await self.blocked_by_unit(event.id, unit_type)
        held = await self.held_by_unit(event.id, unit_type, now, exclude_session_id)

        units = {
            unit_id: UnitAvailability(
                unit_id=unit_id,
                capacity=capacity,
                sold=sold.get(unit_id, 0),
                blocked=blocked.get(unit_id, 0),
                held=held.get(unit_id, 0),
            )
            for unit_id, capacity in capacities.items()
        }

        return InventorySnapshot(
            event_id=event.id,
            unit_type=unit_type,
            ceiling=self.capacity_service.event_ceiling(event, capacities),
            taken_at=now,
            units=units,
        )

    async def held_by_unit(
        self,
        event_id: str,
        unit_type: UnitType,
        now: datetime,
        exclude_session_id: str | None = None,
    ) -> dict[str, int]:
        """Sum of live hold quantities per unit; expired holds are filtered in the query."""
        stmt = (
            select(Hold.unit_id, func.sum(Hold.quantity))
            .where(
                Hold.event_id == event_id,
                Hold.unit_type == unit_type.value,
                Hold.held_until > now,
            )
            .group_by(Hold.unit_id)
        )
        if exclude_session_id is not None:
            stmt = stmt.where(Hold.session_id != exclude_session_id)

        result = await self.db.execute(stmt)
        return {unit_id: int(quantity or 0) for unit_id, quantity in result.all()}

    async def blocked_by_unit(self, event_id: str, unit_type: UnitType) -> dict[str, int]:
        stmt = (
            select(InventoryBlock.unit_id, func.sum(InventoryBlock.quantity))
            .where(
                InventoryBlock.event_id == event_id,
                InventoryBlock.unit_type == unit_type.value,
            )
            .group_by(InventoryBlock.unit_id)
        )
        result = await self.db.execute(stmt)
        return {unit_id: int(quantity or 0) for unit_id, quantity in result.all()}

    async def _section_names(self, event_id: str, seat_ids: list[str]) -> dict[str, str | None]:
        if not seat_ids:
            return {}
        stmt = select(Seat.seat_id, Seat.section_name).where(
            Seat.event_id == event_id,
            Seat.seat_id.in_(seat_ids),
        )
        result = await self.db.execute(stmt)
        return {seat_id: section_name for seat_id, section_name in result.all()}

    @staticmethod
    def _seat_hold_view(hold: Hold, section_name: str | None) -> SeatHoldView:
        section_id, row, number = parse_seat_unit_id(hold.unit_id)
        return SeatHoldView(
            seat_id=hold.unit_id,
            section_id=section_id,
            section_name=section_name,
            row=row,
            number=number,
            held_until=hold.held_until,
            created_at=hold.created_at,
        )
