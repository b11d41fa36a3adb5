"""Unit tests for admin blocks and capacity adjustments."""

import uuid

import pytest

from conftest import GA_EVENT_ID, SEATED_EVENT_ID, add_order, create_ga_event
from ticket_inventory.core.exceptions import NotFoundError, ReservationConflictError, ValidationError
from ticket_inventory.core.units import TOTAL_UNIT_ID, UnitRequest, UnitType
from ticket_inventory.models.inventory import InventoryLogAction
from ticket_inventory.services.availability_service import AvailabilityService
from ticket_inventory.services.block_service import BlockService
from ticket_inventory.services.hold_service import HoldService


@pytest.fixture
def block_service(test_session, clock):
    return BlockService(test_session, clock)


@pytest.mark.asyncio
async def test_block_tiers_reduces_availability(block_service, test_session, clock, ga_event):
    """Test blocking GA tickets and the audit entry it writes."""
    blocks = await block_service.block_tiers(
        GA_EVENT_ID, [UnitRequest("general", 3)], "  Sponsor allocation ", "ops"
    )

    assert [(block.unit_id, block.quantity, block.reason) for block in blocks] == [
        ("general", 3, "Sponsor allocation")
    ]

    snapshot = await AvailabilityService(test_session, clock).get_event_availability(GA_EVENT_ID)
    assert snapshot.units["general"].blocked == 3
    assert snapshot.units["general"].available == 7

    logs = await block_service.get_logs(GA_EVENT_ID)
    assert len(logs) == 1
    assert logs[0].action == InventoryLogAction.BLOCK.value
    assert logs[0].quantity_change == -3
    assert logs[0].unit_ids == ["general"]
    assert logs[0].actor == "ops"


@pytest.mark.asyncio
async def test_block_several_units_is_bulk(block_service, ga_event):
    await block_service.block_tiers(
        GA_EVENT_ID, [UnitRequest("general", 1), UnitRequest("vip", 1)], "Press", "ops"
    )

    logs = await block_service.get_logs(GA_EVENT_ID)
    assert logs[0].action == InventoryLogAction.BULK_BLOCK.value
    assert logs[0].quantity_change == -2


@pytest.mark.asyncio
async def test_cannot_block_held_inventory(block_service, test_session, clock, ga_event):
    """Blocks only take inventory nobody is holding."""
    await HoldService(test_session, clock).reserve(
        GA_EVENT_ID, "s1", [UnitRequest("vip", 4)]
    )

    with pytest.raises(ReservationConflictError) as exc_info:
        await block_service.block_tiers(GA_EVENT_ID, [UnitRequest("vip", 2)], "Artist guests", "ops")

    assert exc_info.value.conflicts == [{"unitId": "vip", "requested": 2, "available": 1}]
    assert await block_service.list_blocks(GA_EVENT_ID) == []


@pytest.mark.asyncio
async def test_block_respects_event_ceiling(block_service, test_session):
    await create_ga_event(test_session, "evt-ceiling", {"general": 10, "vip": 5}, total_capacity=6)

    with pytest.raises(ReservationConflictError) as exc_info:
        await block_service.block_tiers(
            "evt-ceiling", [UnitRequest("general", 4), UnitRequest("vip", 3)], "Hold back", "ops"
        )

    assert exc_info.value.conflicts == [{"unitId": TOTAL_UNIT_ID, "requested": 7, "available": 6}]


@pytest.mark.asyncio
async def test_block_reports_tier_and_ceiling_conflicts(block_service, test_session):
    await create_ga_event(test_session, "evt-ceiling", {"general": 10, "vip": 5}, total_capacity=6)

    with pytest.raises(ReservationConflictError) as exc_info:
        await block_service.block_tiers(
            "evt-ceiling", [UnitRequest("general", 1), UnitRequest("vip", 6)], "Hold back", "ops"
        )

    assert exc_info.value.conflicts == [
        {"unitId": "vip", "requested": 6, "available": 5},
        {"unitId": TOTAL_UNIT_ID, "requested": 7, "available": 6},
    ]


@pytest.mark.asyncio
async def test_block_sold_seat_conflicts(block_service, test_session, seated_event):
    await add_order(test_session, "o1", SEATED_EVENT_ID, [
        {"seat_section_id": "A", "seat_row": "2", "seat_number": "2", "quantity": 1}
    ])

    with pytest.raises(ReservationConflictError):
        await block_service.block_seats(SEATED_EVENT_ID, ["A-2-1", "A-2-2"], "Sightline", "ops")


@pytest.mark.asyncio
async def test_blocked_seat_cannot_be_held(block_service, test_session, clock, seated_event):
    await block_service.block_seats(SEATED_EVENT_ID, ["A-1-1"], "Broken seat", "ops")

    with pytest.raises(ReservationConflictError) as exc_info:
        await HoldService(test_session, clock).reserve(
            SEATED_EVENT_ID, "s1", [UnitRequest("A-1-1")], UnitType.RESERVED
        )

    assert exc_info.value.conflicts == ["A-1-1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("units,reason", [
    ([], "Press"),
    ([UnitRequest("general", 0)], "Press"),
    ([UnitRequest("general", 1), UnitRequest("general", 1)], "Press"),
    ([UnitRequest("general", 1)], "   "),
])
async def test_block_validation(block_service, ga_event, units, reason):
    with pytest.raises(ValidationError):
        await block_service.block_tiers(GA_EVENT_ID, units, reason, "ops")


@pytest.mark.asyncio
async def test_block_unknown_unit(block_service, seated_event):
    with pytest.raises(NotFoundError):
        await block_service.block_seats(SEATED_EVENT_ID, ["Z-9-9"], "Sightline", "ops")


@pytest.mark.asyncio
async def test_unblock_restores_availability(block_service, test_session, clock, ga_event):
    """Test removing blocks and the audit entry it writes."""
    blocks = await block_service.block_tiers(
        GA_EVENT_ID, [UnitRequest("general", 2), UnitRequest("vip", 1)], "Press", "ops"
    )
    clock.advance(5)

    removed = await block_service.unblock(
        GA_EVENT_ID, [block.id for block in blocks] + [uuid.uuid4()], "ops", "Press cancelled"
    )

    assert len(removed) == 2
    snapshot = await AvailabilityService(test_session, clock).get_event_availability(GA_EVENT_ID)
    assert snapshot.total_blocked == 0

    latest = (await block_service.get_logs(GA_EVENT_ID))[0]
    assert latest.action == InventoryLogAction.BULK_UNBLOCK.value
    assert latest.quantity_change == 3
    assert latest.reason == "Press cancelled"


@pytest.mark.asyncio
async def test_unblock_ignores_other_events(block_service, test_session, ga_event, seated_event):
    blocks = await block_service.block_seats(SEATED_EVENT_ID, ["A-1-1"], "Broken seat", "ops")

    with pytest.raises(NotFoundError):
        await block_service.unblock(GA_EVENT_ID, [blocks[0].id], "ops")

    assert len(await block_service.list_blocks(SEATED_EVENT_ID)) == 1


@pytest.mark.asyncio
async def test_unblock_requires_ids(block_service, ga_event):
    with pytest.raises(ValidationError):
        await block_service.unblock(GA_EVENT_ID, [], "ops")


@pytest.mark.asyncio
async def test_list_blocks_newest_first(block_service, clock, ga_event):
    await block_service.block_tiers(GA_EVENT_ID, [UnitRequest("general", 1)], "First", "ops")
    clock.advance(10)
    await block_service.block_tiers(GA_EVENT_ID, [UnitRequest("vip", 1)], "Second", "ops")

    blocks = await block_service.list_blocks(GA_EVENT_ID)

    assert [block.reason for block in blocks] == ["Second", "First"]


@pytest.mark.asyncio
async def test_adjust_capacity_up_and_down(block_service, ga_event):
    """Test capacity changes record previous and new values."""
    tier, entry = await block_service.adjust_capacity(GA_EVENT_ID, "general", 5, "Extra floor space", "ops")
    assert tier.capacity == 15
    assert (entry.previous_value, entry.new_value) == (10, 15)
    assert entry.action == InventoryLogAction.ADD_CAPACITY.value

    tier, entry = await block_service.adjust_capacity(GA_EVENT_ID, "general", -12, "Stage extension", "ops")
    assert tier.capacity == 3
    assert entry.action == InventoryLogAction.REMOVE_CAPACITY.value
    assert entry.quantity_change == -12


@pytest.mark.asyncio
async def test_adjust_capacity_below_consumed(block_service, test_session, clock, ga_event):
    """Capacity cannot drop below what is sold, blocked or held."""
    await add_order(test_session, "o1", GA_EVENT_ID, [{"ticket_type": "vip", "quantity": 2}])
    await HoldService(test_session, clock).reserve(
        GA_EVENT_ID, "s1", [UnitRequest("vip", 1)]
    )

    with pytest.raises(ReservationConflictError) as exc_info:
        await block_service.adjust_capacity(GA_EVENT_ID, "vip", -3, "Smaller lounge", "ops")

    assert exc_info.value.conflicts == [{"ticketTypeId": "vip", "requestedCapacity": 2, "consumed": 3}]

    tier, _ = await block_service.adjust_capacity(GA_EVENT_ID, "vip", -2, "Smaller lounge", "ops")
    assert tier.capacity == 3


@pytest.mark.asyncio
async def test_adjust_capacity_validation(block_service, ga_event):
    with pytest.raises(ValidationError):
        await block_service.adjust_capacity(GA_EVENT_ID, "general", 0, "No-op", "ops")

    with pytest.raises(NotFoundError):
        await block_service.adjust_capacity(GA_EVENT_ID, "balcony", 5, "New tier", "ops")


@pytest.mark.asyncio
async def test_get_logs_filters_and_limits(block_service, clock, ga_event, seated_event):
    await block_service.block_tiers(GA_EVENT_ID, [UnitRequest("general", 1), UnitRequest("vip", 1)], "Press", "ops")
    clock.advance(1)
    await block_service.adjust_capacity(GA_EVENT_ID, "general", 2, "Extra floor space", "ops")
    clock.advance(1)
    await block_service.block_seats(SEATED_EVENT_ID, ["A-1-1"], "Camera", "ops")

    logs = await block_service.get_logs(GA_EVENT_ID)
    assert [entry.action for entry in logs] == ["add_capacity", "bulk_block"]

    blocks_only = await block_service.get_logs(GA_EVENT_ID, action=InventoryLogAction.BULK_BLOCK)
    assert [entry.unit_ids for entry in blocks_only] == [["general", "vip"]]

    assert len(await block_service.get_logs(GA_EVENT_ID, limit=1)) == 1
    assert await block_service.get_logs(GA_EVENT_ID, unit_type=UnitType.RESERVED) == []
    seat_logs = await block_service.get_logs(SEATED_EVENT_ID, unit_type=UnitType.RESERVED)
    assert [entry.unit_ids for entry in seat_logs] == [["A-1-1"]]

    with pytest.raises(NotFoundError):
        await block_service.get_logs("missing")
