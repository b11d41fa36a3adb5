"""Event configuration models: the capacity source for reservations."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, PrimaryKeyConstraint, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .hold import Hold


class SeatingType(str, Enum):
    """How an event sells its inventory."""
    GENERAL = "general"
    RESERVED = "reserved"


class Event(Base):
    """Event whose inventory is being sold. Owned by event configuration."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    seating_type: Mapped[SeatingType] = mapped_column(
        String(16),
        nullable=False,
        default=SeatingType.GENERAL
    )

    # Event-wide ceiling; when set it caps the sum of tier capacities
    total_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_capacity IS NULL OR total_capacity >= 0", name="ck_event_total_capacity_non_negative"),
        CheckConstraint("seating_type IN ('general', 'reserved')", name="ck_event_seating_type_valid"),
    )

    # Relationships
    ticket_tiers: Mapped[list["TicketTier"]] = relationship(
        "TicketTier",
        back_populates="event",
        cascade="all, delete-orphan"
    )
    seats: Mapped[list["Seat"]] = relationship(
        "Seat",
        back_populates="event",
        cascade="all, delete-orphan"
    )
    holds: Mapped[list["Hold"]] = relationship(
        "Hold",
        back_populates="event",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id='{self.id}', seating_type={self.seating_type}, "
            f"total_capacity={self.total_capacity})>"
        )


class TicketTier(Base):
    """General-admission tier and its configured capacity."""

    __tablename__ = "ticket_tiers"

    event_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False
    )
    id: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("event_id", "id", name="pk_ticket_tiers"),
        CheckConstraint("capacity >= 0", name="ck_ticket_tier_capacity_non_negative"),
    )

    event: Mapped["Event"] = relationship("Event", back_populates="ticket_tiers")

    def __repr__(self) -> str:
        return f"<TicketTier(event_id='{self.event_id}', id='{self.id}', capacity={self.capacity})>"


class Seat(Base):
    """A reserved seat. Each seat is a unit with capacity one."""

    __tablename__ = "seats"

    event_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False
    )
    # Canonical "{section_id}-{row}-{number}"
    seat_id: Mapped[str] = mapped_column(String(255), nullable=False)
    section_id: Mapped[str] = mapped_column(String(128), nullable=False)
    section_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    row: Mapped[str] = mapped_column(String(32), nullable=False)
    number: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("event_id", "seat_id", name="pk_seats"),
    )

    event: Mapped["Event"] = relationship("Event", back_populates="seats")

    def __repr__(self) -> str:
        return f"<Seat(event_id='{self.event_id}', seat_id='{self.seat_id}')>"
