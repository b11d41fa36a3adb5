"""Reserved seating schemas."""

from typing import List, Optional

from pydantic import Field

from .common import CamelModel, SuccessResponse


class SeatSelection(CamelModel):
    """
    A seat picked on the seat map.

    Storefront clients send extra display fields (price, section name); only
    the coordinates matter here.
    """

    section_id: str = Field(..., min_length=1)
    row: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
    section_name: Optional[str] = None


class ReserveSeatsRequest(CamelModel):
    """Request schema for holding seats."""

    seats: List[SeatSelection] = Field(default_factory=list, description="Seats to hold")
    session_id: Optional[str] = Field(None, max_length=128, description="Checkout session ID")


class SeatHold(CamelModel):
    """A live seat hold owned by the requesting session."""

    seat_id: str
    section_id: str
    section_name: Optional[str] = None
    row: str
    number: str
    held_until: str
    created_at: str


class SeatAvailabilityResponse(CamelModel):
    sold_seats: List[str]
    held_seats: List[str]
    blocked_seats: List[str]
    my_holds: List[SeatHold]
    hold_duration_ms: int


class ReserveSeatsResponse(SuccessResponse):
    held_seats: List[str]
    held_until: str
    hold_duration_ms: int
