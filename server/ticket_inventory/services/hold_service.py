"""Hold manager: all-or-nothing reservation and release of inventory."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.config import settings
from ..core.exceptions import NotFoundError, ReservationConflictError, ValidationError
from ..core.locking import event_transaction_lock, run_with_retries, store_write_lock
from ..core.observability import metrics_collector
from ..core.units import TOTAL_UNIT_ID, UnitRequest, UnitType, hold_id
from ..models.hold import Hold
from .availability_service import AvailabilityService
from .capacity_service import CapacityService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnitConflict:
    """A requested unit that could not be satisfied."""

    unit_id: str
    requested: int
    available: int


@dataclass
class ReservationResult:
    holds: list[Hold]
    held_until: datetime

    @property
    def hold_ids(self) -> list[str]:
        return [hold.id for hold in self.holds]

    @property
    def unit_ids(self) -> list[str]:
        return [hold.unit_id for hold in self.holds]


class HoldService:
    """Service for creating and releasing holds."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        hold_duration_seconds: int | None = None,
        max_attempts: int | None = None,
        retry_base_delay_ms: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.hold_duration = timedelta(
            seconds=hold_duration_seconds if hold_duration_seconds is not None else settings.hold_duration_seconds
        )
        self.max_attempts = max_attempts or settings.reserve_max_attempts
        self.retry_base_delay_ms = (
            retry_base_delay_ms if retry_base_delay_ms is not None else settings.reserve_retry_base_delay_ms
        )
        self.capacity_service = CapacityService(db)
        self.availability_service = AvailabilityService(db, clock)

    async def reserve(
        self,
        event_id: str,
        session_id: str,
        units: Sequence[UnitRequest],
        unit_type: UnitType = UnitType.GA,
    ) -> ReservationResult:
        """
        Hold every requested unit for ``session_id``, or none of them.

        The session's existing holds of the same unit type are replaced, so
        repeating a request refreshes ``held_until``.

        Args:
            event_id: Event to reserve from
            session_id: Checkout session that will own the holds
            units: Unit ids and quantities
            unit_type: GA tiers or reserved seats

        Returns:
            The committed holds and their shared expiry

        Raises:
            ValidationError: On an empty request, duplicate units, bad quantities or missing session
            NotFoundError: If the event or any unit is unknown
            ReservationConflictError: If any unit or the event ceiling lacks availability
            TransientError: If contention outlasts the retry budget
        """
        self._validate_request(session_id, units, unit_type)

        async def attempt() -> ReservationResult:
            return await self._reserve_once(event_id, session_id, units, unit_type)

        return await run_with_retries(
            attempt,
            session=self.db,
            operation_name="reserve",
            max_attempts=self.max_attempts,
            base_delay_ms=self.retry_base_delay_ms,
        )

    async def _reserve_once(
        self,
        event_id: str,
        session_id: str,
        units: Sequence[UnitRequest],
        unit_type: UnitType,
    ) -> ReservationResult:
        async with event_transaction_lock(self.db, event_id):
            try:
                event = await self.capacity_service.get_event_or_raise(event_id)
                snapshot = await self.availability_service.snapshot(
                    event, unit_type, exclude_session_id=session_id
                )

                unknown = [unit.unit_id for unit in units if unit.unit_id not in snapshot.units]
                if unknown:
                    logger.warning(
                        "Reservation references unknown units",
                        extra={"event_id": event_id, "unit_type": unit_type.value, "unit_ids": unknown}
                    )
                    raise NotFoundError(
                        resource_type="seat" if unit_type == UnitType.RESERVED else "ticket type",
                        resource_id=", ".join(unknown),
                    )

                conflicts = [
                    UnitConflict(unit.unit_id, unit.quantity, snapshot.units[unit.unit_id].available)
                    for unit in units
                    if unit.quantity > snapshot.units[unit.unit_id].available
                ]

                requested_total = sum(unit.quantity for unit in units)
                if requested_total > snapshot.total_available:
                    conflicts.append(UnitConflict(TOTAL_UNIT_ID, requested_total, snapshot.total_available))

                if conflicts:
                    raise self._conflict_error(event_id, session_id, unit_type, conflicts)

                now = self.clock.now()
                held_until = now + self.hold_duration

                await self.db.execute(
                    delete(Hold).where(
                        Hold.event_id == event_id,
                        Hold.session_id == session_id,
                        Hold.unit_type == unit_type.value,
                    )
                )
                holds = [
                    Hold(
                        id=hold_id(event_id, session_id, unit.unit_id),
                        event_id=event_id,
                        session_id=session_id,
                        unit_type=unit_type.value,
                        unit_id=unit.unit_id,
                        quantity=unit.quantity,
                        held_until=held_until,
                        created_at=now,
                    )
                    for unit in units
                ]
                self.db.add_all(holds)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        metrics_collector.record_holds_created(unit_type.value, len(holds))
        logger.info(
            "Holds created",
            extra={
                "event_id": event_id,
                "session_id": session_id,
                "unit_type": unit_type.value,
                "unit_ids": [hold.unit_id for hold in holds],
                "quantity": requested_total,
                "held_until": held_until.isoformat(),
            }
        )
        return ReservationResult(holds=holds, held_until=held_until)

    async def release(
        self,
        event_id: str,
        session_id: str,
        unit_ids: Sequence[str] | None = None,
        unit_type: UnitType | None = None,
    ) -> int:
        """
        Delete a session's holds. Releasing nothing is not an error.

        Args:
            event_id: Event the holds belong to
            session_id: Session that owns the holds
            unit_ids: Units to release; all of the session's holds when omitted
            unit_type: Restrict the release to one unit type

        Returns:
            Number of holds deleted
        """
        if not session_id or not session_id.strip():
            raise ValidationError("Session ID is required")

        stmt = delete(Hold).where(
            Hold.event_id == event_id,
            Hold.session_id == session_id,
        )
        if unit_type is not None:
            stmt = stmt.where(Hold.unit_type == unit_type.value)
        if unit_ids:
            stmt = stmt.where(Hold.unit_id.in_(list(unit_ids)))

        async with store_write_lock(self.db):
            try:
                result = await self.db.execute(stmt)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        released = result.rowcount or 0
        metrics_collector.record_holds_released(released)
        logger.info(
            "Holds released",
            extra={
                "event_id": event_id,
                "session_id": session_id,
                "unit_ids": list(unit_ids) if unit_ids else None,
                "released": released,
            }
        )
        return released

    async def get_session_holds(
        self,
        event_id: str,
        session_id: str,
        unit_type: UnitType | None = None,
    ) -> list[Hold]:
        """Live holds owned by a session, oldest first."""
        stmt = (
            select(Hold)
            .where(
                Hold.event_id == event_id,
                Hold.session_id == session_id,
                Hold.held_until > self.clock.now(),
            )
            .order_by(Hold.created_at, Hold.unit_id)
        )
        if unit_type is not None:
            stmt = stmt.where(Hold.unit_type == unit_type.value)

        result = await self.db.execute(stmt)
        return list(result.scalars())

    def _validate_request(self, session_id: str, units: Sequence[UnitRequest], unit_type: UnitType) -> None:
        if not session_id or not session_id.strip():
            raise ValidationError("Session ID is required")

        if not units:
            noun = "seats" if unit_type == UnitType.RESERVED else "tickets"
            raise ValidationError(f"No {noun} specified")

        violations = []
        seen: set[str] = set()
        for index, unit in enumerate(units):
            if not unit.unit_id:
                violations.append({"path": f"units.{index}", "message": "Unit id is required"})
            elif unit.unit_id in seen:
                violations.append({"path": f"units.{index}", "message": f"Duplicate unit '{unit.unit_id}'"})
            seen.add(unit.unit_id)

            if unit.quantity <= 0:
                violations.append({"path": f"units.{index}.quantity", "message": "Quantity must be positive"})
            elif unit_type == UnitType.RESERVED and unit.quantity != 1:
                violations.append({"path": f"units.{index}.quantity", "message": "A seat can only be held once"})

        if violations:
            raise ValidationError("Invalid reservation request", violations=violations)

    def _conflict_error(
        self,
        event_id: str,
        session_id: str,
        unit_type: UnitType,
        conflicts: list[UnitConflict],
    ) -> ReservationConflictError:
        metrics_collector.record_reservation_conflict(unit_type.value)
        logger.info(
            "Reservation rejected for insufficient inventory",
            extra={
                "event_id": event_id,
                "session_id": session_id,
                "unit_type": unit_type.value,
                "conflicts": [conflict.unit_id for conflict in conflicts],
            }
        )

        itemized = [
            {"ticketTypeId": c.unit_id, "requested": c.requested, "available": c.available}
            for c in conflicts
        ]
        if unit_type == UnitType.RESERVED:
            # Seat clients only want to know which seats to deselect
            return ReservationConflictError(
                "Some seats are no longer available",
                conflicts=[c.unit_id for c in conflicts],
                details=conflicts,
            )
        return ReservationConflictError(
            "Not enough tickets available",
            conflicts=itemized,
            details=conflicts,
        )
