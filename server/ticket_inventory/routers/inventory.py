"""Admin inventory router for blocks and capacity adjustments."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, isoformat_z
from ..core.database import get_db
from ..core.dependencies import actor_name, get_clock, require_admin
from ..core.exceptions import InternalServerError, ProblemDetailsException, ValidationError
from ..core.units import UnitRequest, UnitType, seat_unit_id
from ..models.inventory import InventoryBlock, InventoryLog, InventoryLogAction
from ..schemas.inventory import (
    AdjustCapacityRequest,
    AdjustCapacityResponse,
    BlockListResponse,
    CreateBlocksRequest,
    CreateBlocksResponse,
    InventoryBlockSchema,
    InventoryLogListResponse,
    InventoryLogSchema,
    UnblockResponse,
)
from ..services.block_service import BlockService
from .availability import split_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["inventory"])

DB_DEPENDENCY = Depends(get_db)
CLOCK_DEPENDENCY = Depends(get_clock)
ADMIN_DEPENDENCY = Depends(require_admin)
BLOCK_IDS_QUERY = Query(None, alias="blockIds", description="Comma-separated block IDs")
REASON_QUERY = Query(None, alias="reason")
ACTION_QUERY = Query(None, alias="action")
TYPE_QUERY = Query(None, alias="type", description="ga or reserved")
LIMIT_QUERY = Query(50, alias="limit", ge=1, le=500)


def _convert_block_to_schema(block: InventoryBlock) -> InventoryBlockSchema:
    """Convert inventory block model to schema."""
    return InventoryBlockSchema(
        id=str(block.id),
        event_id=block.event_id,
        unit_type=block.unit_type,
        unit_id=block.unit_id,
        quantity=block.quantity,
        reason=block.reason,
        created_by=block.created_by,
        created_at=isoformat_z(block.created_at),
    )


def _convert_log_to_schema(entry: InventoryLog) -> InventoryLogSchema:
    """Convert inventory log model to schema."""
    return InventoryLogSchema(
        id=str(entry.id),
        action=entry.action,
        unit_type=entry.unit_type,
        unit_ids=entry.unit_ids,
        quantity_change=entry.quantity_change,
        previous_value=entry.previous_value,
        new_value=entry.new_value,
        reason=entry.reason,
        actor=entry.actor,
        created_at=isoformat_z(entry.created_at),
    )


def _parse_block_ids(raw: Optional[str]) -> list[UUID]:
    block_ids = []
    for value in split_ids(raw):
        try:
            block_ids.append(UUID(value))
        except ValueError:
            raise ValidationError(
                "Invalid block ID",
                violations=[{"path": "blockIds", "message": f"'{value}' is not a valid block ID"}],
            )
    if not block_ids:
        raise ValidationError("Missing blockIds parameter")
    return block_ids


@router.get("/{event_id}/inventory/blocks", response_model=BlockListResponse)
async def list_blocks(
    event_id: str,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    admin: dict = ADMIN_DEPENDENCY,
) -> JSONResponse:
    """List active admin blocks of an event, newest first."""
    try:
        blocks = await BlockService(db, clock).list_blocks(event_id)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing blocks",
            extra={"event_id": event_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to list blocks") from e

    response_data = BlockListResponse(
        event_id=event_id,
        blocks=[_convert_block_to_schema(block) for block in blocks],
        total_blocked=sum(block.quantity for block in blocks),
    )
    return JSONResponse(content=response_data.to_wire())


@router.post("/{event_id}/inventory/blocks", response_model=CreateBlocksResponse, status_code=201)
async def create_blocks(
    event_id: str,
    request: CreateBlocksRequest,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    admin: dict = ADMIN_DEPENDENCY,
) -> JSONResponse:
    """
    Withhold GA tickets or specific seats from sale.

    Only inventory that is currently available can be blocked.
    """
    service = BlockService(db, clock)
    actor = actor_name(admin)

    try:
        if request.tickets:
            blocks = await service.block_tiers(
                event_id,
                [UnitRequest(item.ticket_type_id, item.quantity) for item in request.tickets],
                request.reason,
                actor,
            )
        else:
            try:
                seat_ids = [seat_unit_id(seat.section_id, seat.row, seat.number) for seat in request.seats]
            except ValueError as e:
                raise ValidationError(str(e)) from e
            blocks = await service.block_seats(event_id, seat_ids, request.reason, actor)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error creating blocks",
            extra={"event_id": event_id, "actor": actor, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to block inventory") from e

    response_data = CreateBlocksResponse(blocks=[_convert_block_to_schema(block) for block in blocks])
    return JSONResponse(status_code=201, content=response_data.to_wire())


@router.delete("/{event_id}/inventory/blocks", response_model=UnblockResponse)
async def remove_blocks(
    event_id: str,
    block_ids: Optional[str] = BLOCK_IDS_QUERY,
    reason: Optional[str] = REASON_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    admin: dict = ADMIN_DEPENDENCY,
) -> JSONResponse:
    """Release admin blocks back into sale. Unknown IDs are skipped."""
    parsed_ids = _parse_block_ids(block_ids)
    actor = actor_name(admin)

    try:
        removed = await BlockService(db, clock).unblock(event_id, parsed_ids, actor, reason)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error removing blocks",
            extra={"event_id": event_id, "actor": actor, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to unblock inventory") from e

    return JSONResponse(content=UnblockResponse(unblocked=[str(block.id) for block in removed]).to_wire())


@router.post("/{event_id}/inventory/capacity", response_model=AdjustCapacityResponse)
async def adjust_capacity(
    event_id: str,
    request: AdjustCapacityRequest,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    admin: dict = ADMIN_DEPENDENCY,
) -> JSONResponse:
    """
    Change a ticket tier's capacity.

    Capacity cannot drop below what is already sold, blocked or held.
    """
    actor = actor_name(admin)

    try:
        tier, entry = await BlockService(db, clock).adjust_capacity(
            event_id,
            request.ticket_type_id,
            request.adjustment,
            request.reason,
            actor,
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error adjusting capacity",
            extra={
                "event_id": event_id,
                "ticket_type_id": request.ticket_type_id,
                "adjustment": request.adjustment,
                "actor": actor,
                "error": str(e)
            },
            exc_info=True
        )
        raise InternalServerError("Failed to adjust capacity") from e

    response_data = AdjustCapacityResponse(
        ticket_type_id=tier.id,
        previous_capacity=entry.previous_value,
        new_capacity=entry.new_value,
        log_id=str(entry.id),
    )
    return JSONResponse(content=response_data.to_wire())


@router.get("/{event_id}/inventory/logs", response_model=InventoryLogListResponse)
async def list_logs(
    event_id: str,
    action: Optional[str] = ACTION_QUERY,
    unit_type: Optional[str] = TYPE_QUERY,
    limit: int = LIMIT_QUERY,
    db: AsyncSession = DB_DEPENDENCY,
    clock: Clock = CLOCK_DEPENDENCY,
    admin: dict = ADMIN_DEPENDENCY,
) -> JSONResponse:
    """Inventory audit log of an event, newest first."""
    try:
        action_filter = InventoryLogAction(action) if action else None
        type_filter = UnitType(unit_type) if unit_type else None
    except ValueError as e:
        raise ValidationError(str(e)) from e

    try:
        logs = await BlockService(db, clock).get_logs(event_id, action_filter, type_filter, limit)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing inventory logs",
            extra={"event_id": event_id, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError("Failed to get logs") from e

    response_data = InventoryLogListResponse(
        event_id=event_id,
        logs=[_convert_log_to_schema(entry) for entry in logs],
    )
    return JSONResponse(content=response_data.to_wire())
