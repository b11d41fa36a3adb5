"""General-admission availability router: read, hold and release tickets."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, isoformat_z
from ..core.config import settings
from ..core.database import get_db, get_session_factory
from ..core.dependencies import get_clock
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..core.units import UnitRequest, UnitType
from ..models.hold import Hold
from ..schemas.availability import (
    EventAvailabilityResponse,
    ReleaseResponse,
    ReserveTicketsRequest,
    ReserveTicketsResponse,
    TicketHold,
    TicketTypeAvailability,
)
from ..services.availability_service import AvailabilityService, InventorySnapshot
from ..services.hold_service import HoldService
from ..services.sweeper import sweep_event_quietly

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["availability"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
CLOCK_DEPENDENCY = Depends(get_clock)
SESSION_FACTORY_DEPENDENCY = Depends(get_session_factory)
SESSION_ID_QUERY = Query(None, alias="sessionId")
TICKET_TYPE_IDS_QUERY = Query(None, alias="ticketTypeIds", description="Comma-separated ticket type IDs")


def _convert_hold_to_schema(hold: Hold) -> TicketHold:
    """Convert hold model to schema."""
    return TicketHold(
        hold_id=hold.id,
        ticket_type_id=hold.unit_id,
        quantity=hold.quantity,
        held_until=isoformat_z(hold.held_until),
        created_at=isoformat_z(hold.created_at),
    )


def _convert_snapshot_to_schema(
    snapshot: InventorySnapshot,
    my_holds: list[Hold],
) -> EventAvailabilityResponse:
    """Convert availability snapshot to schema."""
    return EventAvailabilityResponse(
        event_id=snapshot.event_id,
        total_capacity=snapshot.ceiling,
        total_sold=snapshot.total_sold,
        total_blocked=snapshot.total_blocked,
        total_held=snapshot.total_held,
        total_available=snapshot.total_available,
        ticket_types=[
            TicketTypeAvailability(
                ticket_type_id=unit.unit_id,
                total_capacity=unit.capacity,
                sold=unit.sold,
                blocked=unit.blocked,
                held=unit.held,
                available=unit.available,
            )
            for unit in snapshot.units.values()
        ],
        my_holds=[_convert_hold_to_schema(hold) for hold in my_holds],
        hold_duration_ms=settings.hold_duration_ms,
    )


def split_ids(raw: Optional[str]) -> list[str]:
    """Parse a comma-separated query parameter, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


@router.get("/{event_id}/availability", response_model=EventAvailabilityResponse)
async def get_availability(
    event_id: str,
    background_tasks: BackgroundTasks,
    session_id: Optional[str] = SESSION_ID_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    session_factory: async_sessionmaker[AsyncSession] = SESSION_FACTORY_DEPENDENCY,
) -> JSONResponse:
    """
    Get remaining GA inventory for an event.

    With a ``sessionId`` the response also lists that session's live holds.
    Expired holds are swept in the background after the response is built.
    """
    try:
        snapshot = await AvailabilityService(db, clock).get_event_availability(event_id)
        my_holds = []
        if session_id:
            my_holds = await HoldService(db, clock).get_session_holds(event_id, session_id, UnitType.GA)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error reading availability",
            extra={"event_id": event_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to fetch availability") from e

    background_tasks.add_task(sweep_event_quietly, session_factory, event_id, clock)
    return JSONResponse(content=_convert_snapshot_to_schema(snapshot, my_holds).to_wire())


@router.post("/{event_id}/availability", response_model=ReserveTicketsResponse)
async def reserve_tickets(
    event_id: str,
    request: ReserveTicketsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
) -> JSONResponse:
    """
    Hold GA tickets for a checkout session.

    All requested tickets are held or none are. Repeating the call refreshes
    the session's holds.
    """
    units = [UnitRequest(ticket.ticket_type_id, ticket.quantity) for ticket in request.tickets]

    try:
        result = await HoldService(db, clock).reserve(
            event_id,
            request.session_id or "",
            units,
            UnitType.GA,
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error holding tickets",
            extra={"event_id": event_id, "session_id": request.session_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to hold tickets") from e

    response_data = ReserveTicketsResponse(
        hold_ids=result.hold_ids,
        held_until=isoformat_z(result.held_until),
        hold_duration_ms=settings.hold_duration_ms,
    )
    return JSONResponse(content=response_data.to_wire())


@router.delete("/{event_id}/availability", response_model=ReleaseResponse)
async def release_tickets(
    event_id: str,
    session_id: Optional[str] = SESSION_ID_QUERY,
    ticket_type_ids: Optional[str] = TICKET_TYPE_IDS_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
) -> JSONResponse:
    """Release a session's GA holds, or only the listed ticket types."""
    try:
        released = await HoldService(db, clock).release(
            event_id,
            session_id or "",
            split_ids(ticket_type_ids),
            UnitType.GA,
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error releasing tickets",
            extra={"event_id": event_id, "session_id": session_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to release tickets") from e

    return JSONResponse(content=ReleaseResponse(released=released).to_wire())
