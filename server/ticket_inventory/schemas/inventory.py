"""Admin inventory schemas: blocks and capacity changes."""

from typing import List, Optional

from pydantic import AliasChoices, Field, model_validator

from .common import CamelModel, SuccessResponse


class BlockTicketsItem(CamelModel):
    ticket_type_id: str = Field(..., min_length=1, validation_alias=AliasChoices("ticketTypeId", "tierId"))
    quantity: int = Field(..., ge=1, description="Number of tickets to block")


class BlockSeatItem(CamelModel):
    section_id: str = Field(..., min_length=1)
    row: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)


class CreateBlocksRequest(CamelModel):
    """Block either GA tickets or specific seats, never both at once."""

    tickets: Optional[List[BlockTicketsItem]] = None
    seats: Optional[List[BlockSeatItem]] = None
    reason: str = Field(..., min_length=1, max_length=500, description="Why the inventory is withheld")

    @model_validator(mode="after")
    def check_one_kind(self) -> "CreateBlocksRequest":
        if bool(self.tickets) == bool(self.seats):
            raise ValueError("Provide either tickets or seats to block")
        return self


class InventoryBlockSchema(CamelModel):
    """Active admin block."""

    id: str
    event_id: str
    unit_type: str
    unit_id: str
    quantity: int
    reason: str
    created_by: str
    created_at: str


class BlockListResponse(CamelModel):
    event_id: str
    blocks: List[InventoryBlockSchema]
    total_blocked: int


class CreateBlocksResponse(SuccessResponse):
    blocks: List[InventoryBlockSchema]


class UnblockResponse(SuccessResponse):
    unblocked: List[str] = Field(..., description="IDs of removed blocks")


class AdjustCapacityRequest(CamelModel):
    """Request schema for changing a ticket tier's capacity."""

    ticket_type_id: str = Field(..., min_length=1, validation_alias=AliasChoices("ticketTypeId", "tierId"))
    adjustment: int = Field(..., description="Signed change in capacity")
    reason: str = Field(..., min_length=1, max_length=500)


class AdjustCapacityResponse(SuccessResponse):
    ticket_type_id: str
    previous_capacity: int
    new_capacity: int
    log_id: str


class InventoryLogSchema(CamelModel):
    """Audit entry of an admin inventory change."""

    id: str
    action: str
    unit_type: str
    unit_ids: List[str]
    quantity_change: int
    previous_value: Optional[int] = None
    new_value: Optional[int] = None
    reason: str
    actor: str
    created_at: str


class InventoryLogListResponse(CamelModel):
    event_id: str
    logs: List[InventoryLogSchema]
