"""Admin block and inventory audit log model definitions."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class InventoryLogAction(str, Enum):
    """Kinds of admin inventory changes recorded in the audit log."""
    ADD_CAPACITY = "add_capacity"
    REMOVE_CAPACITY = "remove_capacity"
    BLOCK = "block"
    UNBLOCK = "unblock"
    BULK_BLOCK = "bulk_block"
    BULK_UNBLOCK = "bulk_unblock"


class InventoryBlock(Base):
    """Operator-created hold that removes capacity until explicitly unblocked."""

    __tablename__ = "inventory_blocks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    event_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    unit_type: Mapped[str] = mapped_column(String(16), nullable=False)  # UnitType value
    unit_id: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_block_quantity_positive"),
        CheckConstraint("unit_type = 'ga' OR quantity = 1", name="ck_inventory_block_seat_quantity_one"),
        CheckConstraint("length(reason) > 0", name="ck_inventory_block_reason_not_empty"),
        CheckConstraint("length(created_by) > 0", name="ck_inventory_block_created_by_not_empty"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryBlock(id={self.id}, event_id='{self.event_id}', "
            f"unit_id='{self.unit_id}', quantity={self.quantity})>"
        )


class InventoryLog(Base):
    """Append-only audit record of an admin inventory change."""

    __tablename__ = "inventory_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    event_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False
    )
    action: Mapped[InventoryLogAction] = mapped_column(String(32), nullable=False)
    unit_type: Mapped[str] = mapped_column(String(16), nullable=False)  # UnitType value
    unit_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Signed change in blocked or configured quantity
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)

    # Before/after values for capacity changes
    previous_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    new_value: Mapped[int | None] = mapped_column(Integer, nullable=True)

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity_change != 0", name="ck_inventory_log_change_nonzero"),
        CheckConstraint("length(actor) > 0", name="ck_inventory_log_actor_not_empty"),
        Index("ix_inventory_logs_event_id_created_at", "event_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryLog(id={self.id}, event_id='{self.event_id}', action={self.action}, "
            f"quantity_change={self.quantity_change}, actor='{self.actor}')>"
        )
