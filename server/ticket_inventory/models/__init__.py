"""Models module exporting all database models."""

from .event import Event, Seat, SeatingType, TicketTier
from .hold import Hold
from .inventory import InventoryBlock, InventoryLog, InventoryLogAction
from .order import FINALIZED_ORDER_STATUSES, Order, OrderItem

__all__ = [
    # Event configuration
    "Event",
    "SeatingType",
    "TicketTier",
    "Seat",

    # Reservation state
    "Hold",

    # Admin inventory
    "InventoryBlock",
    "InventoryLog",
    "InventoryLogAction",

    # External orders (read-only)
    "Order",
    "OrderItem",
    "FINALIZED_ORDER_STATUSES",
]
