"""Admin inventory operations: blocks and capacity adjustments."""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.config import settings
from ..core.exceptions import NotFoundError, ReservationConflictError, ValidationError
from ..core.locking import event_transaction_lock, run_with_retries
from ..core.observability import metrics_collector
from ..core.units import TOTAL_UNIT_ID, UnitRequest, UnitType
from ..models.event import TicketTier
from ..models.inventory import InventoryBlock, InventoryLog, InventoryLogAction
from .availability_service import AvailabilityService
from .capacity_service import CapacityService

logger = logging.getLogger(__name__)


class BlockService:
    """Service for operator blocks and the inventory audit log."""

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock
        self.capacity_service = CapacityService(db)
        self.availability_service = AvailabilityService(db, clock)

    async def block_tiers(
        self,
        event_id: str,
        tiers: Sequence[UnitRequest],
        reason: str,
        actor: str,
    ) -> list[InventoryBlock]:
        """Block quantities of GA tiers. See :meth:`_block`."""
        return await self._block(event_id, UnitType.GA, tiers, reason, actor)

    async def block_seats(
        self,
        event_id: str,
        seat_ids: Sequence[str],
        reason: str,
        actor: str,
    ) -> list[InventoryBlock]:
        """Block individual seats. See :meth:`_block`."""
        units = [UnitRequest(seat_id, 1) for seat_id in seat_ids]
        return await self._block(event_id, UnitType.RESERVED, units, reason, actor)

    async def _block(
        self,
        event_id: str,
        unit_type: UnitType,
        units: Sequence[UnitRequest],
        reason: str,
        actor: str,
    ) -> list[InventoryBlock]:
        """
        Create admin blocks for the given units.

        Blocks are checked against current availability under the event lock,
        so a block can never push a unit past its capacity.

        Raises:
            ValidationError: If the request is empty, has duplicates or lacks a reason
            NotFoundError: If the event or any unit is unknown
            ReservationConflictError: If a unit lacks the quantity to block
        """
        reason = self._require_reason(reason)
        self._validate_units(units)

        async def attempt() -> list[InventoryBlock]:
            return await self._block_once(event_id, unit_type, units, reason, actor)

        blocks = await run_with_retries(
            attempt,
            session=self.db,
            operation_name="block",
            max_attempts=settings.reserve_max_attempts,
            base_delay_ms=settings.reserve_retry_base_delay_ms,
        )

        metrics_collector.record_blocks("block", len(blocks))
        logger.info(
            "Inventory blocked",
            extra={
                "event_id": event_id,
                "unit_type": unit_type.value,
                "unit_ids": [block.unit_id for block in blocks],
                "quantity": sum(block.quantity for block in blocks),
                "reason": reason,
                "actor": actor,
            }
        )
        return blocks

    async def _block_once(
        self,
        event_id: str,
        unit_type: UnitType,
        units: Sequence[UnitRequest],
        reason: str,
        actor: str,
    ) -> list[InventoryBlock]:
        async with event_transaction_lock(self.db, event_id):
            try:
                event = await self.capacity_service.get_event_or_raise(event_id)
                snapshot = await self.availability_service.snapshot(event, unit_type)

                unknown = [unit.unit_id for unit in units if unit.unit_id not in snapshot.units]
                if unknown:
                    raise NotFoundError(
                        resource_type="seat" if unit_type == UnitType.RESERVED else "ticket type",
                        resource_id=", ".join(unknown),
                    )

                conflicts = [
                    {
                        "unitId": unit.unit_id,
                        "requested": unit.quantity,
                        "available": snapshot.units[unit.unit_id].available,
                    }
                    for unit in units
                    if unit.quantity > snapshot.units[unit.unit_id].available
                ]
                requested_total = sum(unit.quantity for unit in units)
                if requested_total > snapshot.total_available:
                    conflicts.append({
                        "unitId": TOTAL_UNIT_ID,
                        "requested": requested_total,
                        "available": snapshot.total_available,
                    })
                if conflicts:
                    logger.warning(
                        "Block rejected for insufficient inventory",
                        extra={"event_id": event_id, "conflicts": conflicts, "actor": actor}
                    )
                    raise ReservationConflictError("Requested inventory is not available to block", conflicts)

                now = self.clock.now()
                blocks = [
                    InventoryBlock(
                        event_id=event_id,
                        unit_type=unit_type.value,
                        unit_id=unit.unit_id,
                        quantity=unit.quantity,
                        reason=reason,
                        created_by=actor,
                        created_at=now,
                    )
                    for unit in units
                ]
                self.db.add_all(blocks)
                self.db.add(InventoryLog(
                    event_id=event_id,
                    action=(InventoryLogAction.BULK_BLOCK if len(blocks) > 1 else InventoryLogAction.BLOCK).value,
                    unit_type=unit_type.value,
                    unit_ids=[block.unit_id for block in blocks],
                    quantity_change=-requested_total,
                    reason=reason,
                    actor=actor,
                    created_at=now,
                ))
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        return blocks

    async def unblock(
        self,
        event_id: str,
        block_ids: Sequence[UUID],
        actor: str,
        reason: str | None = None,
    ) -> list[InventoryBlock]:
        """
        Remove admin blocks of an event.

        Ids that are unknown or belong to another event are skipped.

        Raises:
            NotFoundError: If none of the ids names a block of this event
        """
        if not block_ids:
            raise ValidationError("No blocks specified")

        await self.capacity_service.get_event_or_raise(event_id)

        async with event_transaction_lock(self.db, event_id):
            try:
                stmt = select(InventoryBlock).where(
                    InventoryBlock.event_id == event_id,
                    InventoryBlock.id.in_(list(block_ids)),
                )
                result = await self.db.execute(stmt)
                blocks = list(result.scalars())
                if not blocks:
                    raise NotFoundError(
                        resource_type="inventory block",
                        detail="No matching blocks were found for this event",
                    )

                for block in blocks:
                    await self.db.delete(block)

                # One log entry per unit type touched
                now = self.clock.now()
                for unit_type in sorted({block.unit_type for block in blocks}):
                    of_type = [block for block in blocks if block.unit_type == unit_type]
                    self.db.add(InventoryLog(
                        event_id=event_id,
                        action=(
                            InventoryLogAction.BULK_UNBLOCK if len(of_type) > 1 else InventoryLogAction.UNBLOCK
                        ).value,
                        unit_type=unit_type,
                        unit_ids=[block.unit_id for block in of_type],
                        quantity_change=sum(block.quantity for block in of_type),
                        reason=reason or "Unblocked",
                        actor=actor,
                        created_at=now,
                    ))
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        metrics_collector.record_blocks("unblock", len(blocks))
        logger.info(
            "Inventory unblocked",
            extra={
                "event_id": event_id,
                "block_ids": [str(block.id) for block in blocks],
                "skipped": len(block_ids) - len(blocks),
                "actor": actor,
            }
        )
        return blocks

    async def list_blocks(self, event_id: str) -> list[InventoryBlock]:
        """Active blocks of an event, newest first."""
        await self.capacity_service.get_event_or_raise(event_id)
        stmt = (
            select(InventoryBlock)
            .where(InventoryBlock.event_id == event_id)
            .order_by(InventoryBlock.created_at.desc(), InventoryBlock.unit_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_logs(
        self,
        event_id: str,
        action: InventoryLogAction | None = None,
        unit_type: UnitType | None = None,
        limit: int = 50,
    ) -> list[InventoryLog]:
        """Audit entries of an event, newest first, optionally filtered."""
        await self.capacity_service.get_event_or_raise(event_id)

        stmt = select(InventoryLog).where(InventoryLog.event_id == event_id)
        if action is not None:
            stmt = stmt.where(InventoryLog.action == action.value)
        if unit_type is not None:
            stmt = stmt.where(InventoryLog.unit_type == unit_type.value)
        stmt = stmt.order_by(InventoryLog.created_at.desc()).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def adjust_capacity(
        self,
        event_id: str,
        ticket_type_id: str,
        delta: int,
        reason: str,
        actor: str,
    ) -> tuple[TicketTier, InventoryLog]:
        """
        Change the configured capacity of a GA tier by ``delta``.

        Args:
            event_id: Event the tier belongs to
            ticket_type_id: Tier to adjust
            delta: Signed capacity change
            reason: Why the change was made
            actor: Admin making the change

        Returns:
            The updated tier and its audit entry

        Raises:
            ValidationError: If delta is zero or reason is missing
            NotFoundError: If event or tier not found
            ConflictError: If the new capacity is below what is already sold, blocked or held
        """
        reason = self._require_reason(reason)
        if delta == 0:
            raise ValidationError("Capacity change must be non-zero")

        async def attempt() -> tuple[TicketTier, InventoryLog]:
            return await self._adjust_capacity_once(event_id, ticket_type_id, delta, reason, actor)

        return await run_with_retries(
            attempt,
            session=self.db,
            operation_name="adjust_capacity",
            max_attempts=settings.reserve_max_attempts,
            base_delay_ms=settings.reserve_retry_base_delay_ms,
        )

    async def _adjust_capacity_once(
        self,
        event_id: str,
        ticket_type_id: str,
        delta: int,
        reason: str,
        actor: str,
    ) -> tuple[TicketTier, InventoryLog]:
        async with event_transaction_lock(self.db, event_id):
            try:
                event = await self.capacity_service.get_event_or_raise(event_id)
                tier = await self.db.get(TicketTier, (event_id, ticket_type_id))
                if tier is None:
                    raise NotFoundError(resource_type="ticket type", resource_id=ticket_type_id)

                snapshot = await self.availability_service.snapshot(event, UnitType.GA)
                consumed = snapshot.units[ticket_type_id].consumed
                previous = tier.capacity
                new_capacity = previous + delta

                if new_capacity < consumed:
                    logger.warning(
                        "Capacity adjustment rejected",
                        extra={
                            "event_id": event_id,
                            "ticket_type_id": ticket_type_id,
                            "current_capacity": previous,
                            "requested_delta": delta,
                            "consumed": consumed,
                            "actor": actor,
                        }
                    )
                    raise ReservationConflictError(
                        f"Cannot reduce capacity of '{ticket_type_id}' to {new_capacity}: "
                        f"{consumed} tickets are sold, blocked or held",
                        conflicts=[{
                            "ticketTypeId": ticket_type_id,
                            "requestedCapacity": new_capacity,
                            "consumed": consumed,
                        }],
                    )

                tier.capacity = new_capacity
                entry = InventoryLog(
                    event_id=event_id,
                    action=(
                        InventoryLogAction.ADD_CAPACITY if delta > 0 else InventoryLogAction.REMOVE_CAPACITY
                    ).value,
                    unit_type=UnitType.GA.value,
                    unit_ids=[ticket_type_id],
                    quantity_change=delta,
                    previous_value=previous,
                    new_value=new_capacity,
                    reason=reason,
                    actor=actor,
                    created_at=self.clock.now(),
                )
                self.db.add(entry)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            "Capacity adjusted",
            extra={
                "event_id": event_id,
                "ticket_type_id": ticket_type_id,
                "delta": delta,
                "capacity_before": previous,
                "capacity_after": new_capacity,
                "actor": actor,
            }
        )
        return tier, entry

    @staticmethod
    def _require_reason(reason: str | None) -> str:
        if not reason or not reason.strip():
            raise ValidationError("A reason is required for inventory changes")
        return reason.strip()

    @staticmethod
    def _validate_units(units: Sequence[UnitRequest]) -> None:
        if not units:
            raise ValidationError("No inventory specified")

        violations = []
        seen: set[str] = set()
        for index, unit in enumerate(units):
            if unit.unit_id in seen:
                violations.append({"path": f"units.{index}", "message": f"Duplicate unit '{unit.unit_id}'"})
            seen.add(unit.unit_id)
            if unit.quantity <= 0:
                violations.append({"path": f"units.{index}.quantity", "message": "Quantity must be positive"})
        if violations:
            raise ValidationError("Invalid block request", violations=violations)
