"""Order models, owned by the order subsystem and only read here."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

# Order statuses whose units are irrevocably sold
FINALIZED_ORDER_STATUSES = ("completed", "confirmed")


class Order(Base):
    """Customer order for an event."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    event_id: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now()
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Order(id='{self.id}', event_id='{self.event_id}', status='{self.status}')>"


class OrderItem(Base):
    """
    Order line item.

    GA items carry ``ticket_type`` (tier id, or tier name as the storefront
    writes it; general admission when missing). Reserved-seat items carry seat
    coordinates instead.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    ticket_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seat_section_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    seat_row: Mapped[str | None] = mapped_column(String(32), nullable=True)
    seat_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<OrderItem(order_id='{self.order_id}', ticket_type={self.ticket_type!r}, "
            f"seat={self.seat_section_id}/{self.seat_row}/{self.seat_number}, quantity={self.quantity})>"
        )
