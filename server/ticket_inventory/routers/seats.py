"""Reserved seating router: seat map state, seat holds and release."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, isoformat_z
from ..core.config import settings
from ..core.database import get_db, get_session_factory
from ..core.dependencies import get_clock
from ..core.exceptions import InternalServerError, ProblemDetailsException, ValidationError
from ..core.units import UnitRequest, UnitType, seat_unit_id
from ..schemas.availability import ReleaseResponse
from ..schemas.seats import (
    ReserveSeatsRequest,
    ReserveSeatsResponse,
    SeatAvailabilityResponse,
    SeatHold,
    SeatSelection,
)
from ..services.availability_service import AvailabilityService, SeatAvailability
from ..services.hold_service import HoldService
from ..services.sweeper import sweep_event_quietly
from .availability import split_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["seats"])

DB_DEPENDENCY = Depends(get_db)
CLOCK_DEPENDENCY = Depends(get_clock)
SESSION_FACTORY_DEPENDENCY = Depends(get_session_factory)
SESSION_ID_QUERY = Query(None, alias="sessionId")
SEAT_IDS_QUERY = Query(None, alias="seatIds", description="Comma-separated seat IDs")


def _convert_seats_to_schema(seats: SeatAvailability) -> SeatAvailabilityResponse:
    """Convert seat availability to schema."""
    return SeatAvailabilityResponse(
        sold_seats=seats.sold_seats,
        held_seats=seats.held_seats,
        blocked_seats=seats.blocked_seats,
        my_holds=[
            SeatHold(
                seat_id=hold.seat_id,
                section_id=hold.section_id,
                section_name=hold.section_name,
                row=hold.row,
                number=hold.number,
                held_until=isoformat_z(hold.held_until),
                created_at=isoformat_z(hold.created_at),
            )
            for hold in seats.my_holds
        ],
        hold_duration_ms=settings.hold_duration_ms,
    )


def _seat_ids(seats: list[SeatSelection]) -> list[str]:
    """Build canonical seat ids, reporting every malformed seat at once."""
    seat_ids = []
    violations = []
    for index, seat in enumerate(seats):
        try:
            seat_ids.append(seat_unit_id(seat.section_id, seat.row, seat.number))
        except ValueError as e:
            violations.append({"path": f"seats.{index}", "message": str(e)})
    if violations:
        raise ValidationError("Invalid seat selection", violations=violations)
    return seat_ids


@router.get("/{event_id}/seats", response_model=SeatAvailabilityResponse)
async def get_seats(
    event_id: str,
    background_tasks: BackgroundTasks,
    session_id: Optional[str] = SESSION_ID_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    session_factory: async_sessionmaker[AsyncSession] = SESSION_FACTORY_DEPENDENCY,
) -> JSONResponse:
    """
    Get sold, held and blocked seats for an event.

    ``myHolds`` lists the seats held by ``sessionId``.
    """
    try:
        seats = await AvailabilityService(db, clock).get_seat_availability(event_id, session_id)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error reading seat availability",
            extra={"event_id": event_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to fetch seat availability") from e

    background_tasks.add_task(sweep_event_quietly, session_factory, event_id, clock)
    return JSONResponse(content=_convert_seats_to_schema(seats).to_wire())


@router.post("/{event_id}/seats", response_model=ReserveSeatsResponse)
async def reserve_seats(
    event_id: str,
    request: ReserveSeatsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
) -> JSONResponse:
    """Hold seats for a checkout session. Conflicts list the seats to deselect."""
    units = [UnitRequest(seat_id, 1) for seat_id in _seat_ids(request.seats)]

    try:
        result = await HoldService(db, clock).reserve(
            event_id,
            request.session_id or "",
            units,
            UnitType.RESERVED,
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error holding seats",
            extra={"event_id": event_id, "session_id": request.session_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to hold seats") from e

    response_data = ReserveSeatsResponse(
        held_seats=result.unit_ids,
        held_until=isoformat_z(result.held_until),
        hold_duration_ms=settings.hold_duration_ms,
    )
    return JSONResponse(content=response_data.to_wire())


@router.delete("/{event_id}/seats", response_model=ReleaseResponse)
async def release_seats(
    event_id: str,
    session_id: Optional[str] = SESSION_ID_QUERY,
    seat_ids: Optional[str] = SEAT_IDS_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
) -> JSONResponse:
    """Release a session's seat holds, or only the listed seats."""
    try:
        released = await HoldService(db, clock).release(
            event_id,
            session_id or "",
            split_ids(seat_ids),
            UnitType.RESERVED,
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error releasing seats",
            extra={"event_id": event_id, "session_id": session_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to release seats") from e

    return JSONResponse(content=ReleaseResponse(released=released).to_wire())
