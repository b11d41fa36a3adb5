"""General-admission availability and hold schemas."""

from typing import List, Optional

from pydantic import Field

from .common import CamelModel, SuccessResponse


class TicketSelection(CamelModel):
    """A quantity of one ticket type."""

    ticket_type_id: str = Field(..., min_length=1, description="Ticket tier ID")
    quantity: int = Field(..., description="Number of tickets to hold")


class ReserveTicketsRequest(CamelModel):
    """Request schema for holding GA tickets."""

    tickets: List[TicketSelection] = Field(default_factory=list, description="Tickets to hold")
    session_id: Optional[str] = Field(None, max_length=128, description="Checkout session ID")


class TicketTypeAvailability(CamelModel):
    ticket_type_id: str
    total_capacity: int
    sold: int
    blocked: int
    held: int
    available: int


class TicketHold(CamelModel):
    """A live GA hold owned by the requesting session."""

    hold_id: str
    ticket_type_id: str
    quantity: int
    held_until: str
    created_at: str


class EventAvailabilityResponse(CamelModel):
    """Current GA availability of an event."""

    event_id: str
    total_capacity: int
    total_sold: int
    total_blocked: int
    total_held: int
    total_available: int
    ticket_types: List[TicketTypeAvailability]
    my_holds: List[TicketHold] = Field(default_factory=list, description="Holds of the session named in the query")
    hold_duration_ms: int


class ReserveTicketsResponse(SuccessResponse):
    hold_ids: List[str]
    held_until: str = Field(..., description="Hold expiry (ISO 8601, UTC)")
    hold_duration_ms: int


class ReleaseResponse(SuccessResponse):
    released: int = Field(0, description="Number of holds deleted")
