"""Hold model definition."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .event import Event


class Hold(Base):
    """
    Time-limited, session-scoped reservation of one sellable unit.

    A hold is live while ``held_until`` is in the future. Nothing marks it
    expired; readers compare against the clock.
    """

    __tablename__ = "holds"

    # Derived from (event_id, session_id, unit_id), see core.units.hold_id
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    event_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False
    )
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    unit_type: Mapped[str] = mapped_column(String(16), nullable=False)  # UnitType value
    unit_id: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    held_until: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_hold_quantity_positive"),
        CheckConstraint("unit_type = 'ga' OR quantity = 1", name="ck_hold_seat_quantity_one"),
        CheckConstraint("length(session_id) > 0", name="ck_hold_session_id_not_empty"),
        Index("ix_holds_event_id_held_until", "event_id", "held_until"),
        UniqueConstraint("event_id", "session_id", "unit_id", name="uq_holds_event_session_unit"),
        Index("ix_holds_held_until", "held_until"),
    )

    event: Mapped["Event"] = relationship("Event", back_populates="holds")

    def is_live(self, now: datetime) -> bool:
        return self.held_until > now

    def __repr__(self) -> str:
        return (
            f"<Hold(id='{self.id}', unit_id='{self.unit_id}', "
            f"quantity={self.quantity}, held_until={self.held_until})>"
        )
