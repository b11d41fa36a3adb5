"""Integration tests for API endpoints."""

import uuid

import pytest

from conftest import GA_EVENT_ID, SEATED_EVENT_ID, add_order, create_ga_event, make_token
from ticket_inventory.core.units import TOTAL_UNIT_ID, hold_id


def _tickets(session_id, **quantities):
    return {
        "sessionId": session_id,
        "tickets": [{"ticketTypeId": tier, "quantity": quantity} for tier, quantity in quantities.items()],
    }


def _seats(session_id, *seat_ids):
    seats = []
    for seat_id in seat_ids:
        section_id, row, number = seat_id.split("-")
        seats.append({"sectionId": section_id, "row": row, "number": int(number), "price": 45})
    return {"sessionId": session_id, "seats": seats}


@pytest.mark.asyncio
async def test_get_availability_endpoint(test_client, ga_event):
    """Test the GA availability endpoint."""
    response = await test_client.get(f"/events/{GA_EVENT_ID}/availability")

    assert response.status_code == 200
    data = response.json()
    assert data["eventId"] == GA_EVENT_ID
    assert data["totalCapacity"] == 15
    assert data["totalAvailable"] == 15
    assert data["holdDurationMs"] == 300_000
    assert {item["ticketTypeId"]: item["available"] for item in data["ticketTypes"]} == {"general": 10, "vip": 5}


@pytest.mark.asyncio
async def test_get_availability_unknown_event(test_client):
    response = await test_client.get("/events/missing/availability")

    assert response.status_code == 404
    data = response.json()
    assert data["status"] == 404
    assert "error" in data


@pytest.mark.asyncio
async def test_reserve_tickets_endpoint(test_client, ga_event):
    """Test holding tickets returns hold ids and expiry."""
    response = await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", general=2))

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["holdIds"] == [hold_id(GA_EVENT_ID, "s1", "general")]
    assert data["heldUntil"] == "2026-06-01T12:05:00.000Z"
    assert data["holdDurationMs"] == 300_000

    availability = (await test_client.get(f"/events/{GA_EVENT_ID}/availability")).json()
    assert availability["totalHeld"] == 2
    assert availability["totalAvailable"] == 13


@pytest.mark.asyncio
async def test_last_tickets_conflict(test_client, test_session):
    """Test that a second session cannot take more than what is left."""
    await create_ga_event(test_session, "evt-ten", {"general": 10})

    first = await test_client.post("/events/evt-ten/availability", json=_tickets("s1", general=7))
    assert first.status_code == 200

    second = await test_client.post("/events/evt-ten/availability", json=_tickets("s2", general=5))

    assert second.status_code == 409
    data = second.json()
    assert data["error"] == "Not enough tickets available"
    assert data["conflicts"] == [
        {"ticketTypeId": "general", "requested": 5, "available": 3},
        {"ticketTypeId": TOTAL_UNIT_ID, "requested": 5, "available": 3},
    ]

    released = await test_client.delete("/events/evt-ten/availability", params={"sessionId": "s1"})
    assert released.status_code == 200

    availability = (await test_client.get("/events/evt-ten/availability")).json()
    assert availability["totalAvailable"] == 10


@pytest.mark.asyncio
async def test_expired_hold_frees_tickets(test_client, ga_event, clock):
    await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", general=10))

    blocked = await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s2", general=1))
    assert blocked.status_code == 409

    clock.advance(301)
    response = await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s2", general=10))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_sold_tickets_reduce_availability(test_client, test_session, ga_event):
    await add_order(test_session, "o1", GA_EVENT_ID, [{"ticket_type": "VIP", "quantity": 5}])

    response = await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", vip=1))

    assert response.status_code == 409
    assert response.json()["conflicts"][0]["available"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("body,message", [
    ({"tickets": [{"ticketTypeId": "general", "quantity": 1}]}, "Session ID is required"),
    ({"sessionId": "s1", "tickets": []}, "No tickets specified"),
    ({"sessionId": "s1", "tickets": [{"ticketTypeId": "general", "quantity": 0}]}, "Invalid reservation request"),
])
async def test_reserve_tickets_invalid(test_client, ga_event, body, message):
    """Test invalid hold requests return 400 Problem Details."""
    response = await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=body)

    assert response.status_code == 400
    data = response.json()
    assert data["status"] == 400
    assert data["error"] == message


@pytest.mark.asyncio
async def test_reserve_tickets_malformed_body(test_client, ga_event):
    response = await test_client.post(
        f"/events/{GA_EVENT_ID}/availability",
        json={"sessionId": "s1", "tickets": [{"ticketTypeId": "general", "quantity": "many"}]},
    )

    assert response.status_code == 400
    data = response.json()
    assert "violations" in data
    assert response.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_reserve_unknown_ticket_type(test_client, ga_event):
    response = await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", balcony=1))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_release_tickets_endpoint(test_client, ga_event):
    """Test releasing holds is idempotent."""
    await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", general=2, vip=1))

    response = await test_client.delete(
        f"/events/{GA_EVENT_ID}/availability", params={"sessionId": "s1", "ticketTypeIds": "vip"}
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "released": 1}

    response = await test_client.delete(f"/events/{GA_EVENT_ID}/availability", params={"sessionId": "s1"})
    assert response.json()["released"] == 1

    response = await test_client.delete(f"/events/{GA_EVENT_ID}/availability", params={"sessionId": "s1"})
    assert response.status_code == 200
    assert response.json()["released"] == 0


@pytest.mark.asyncio
async def test_release_tickets_requires_session(test_client, ga_event):
    response = await test_client.delete(f"/events/{GA_EVENT_ID}/availability")

    assert response.status_code == 400
    assert response.json()["error"] == "Session ID is required"


@pytest.mark.asyncio
async def test_seat_hold_conflict(test_client, seated_event):
    """Test that a held seat is reported back as the conflict."""
    first = await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s1", "A-1-5"))
    assert first.status_code == 200
    assert first.json()["heldSeats"] == ["A-1-5"]

    second = await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s2", "A-1-4", "A-1-5"))

    assert second.status_code == 409
    data = second.json()
    assert data["error"] == "Some seats are no longer available"
    assert data["conflicts"] == ["A-1-5"]

    seats = (await test_client.get(f"/events/{SEATED_EVENT_ID}/seats", params={"sessionId": "s2"})).json()
    assert seats["heldSeats"] == ["A-1-5"]
    assert seats["myHolds"] == []


@pytest.mark.asyncio
async def test_get_seats_endpoint(test_client, test_session, seated_event):
    """Test the seat map includes sold seats and the caller's holds."""
    await add_order(test_session, "o1", SEATED_EVENT_ID, [
        {"seat_section_id": "A", "seat_row": "2", "seat_number": "3", "quantity": 1}
    ])
    await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s1", "A-1-1"))

    response = await test_client.get(f"/events/{SEATED_EVENT_ID}/seats", params={"sessionId": "s1"})

    assert response.status_code == 200
    data = response.json()
    assert data["soldSeats"] == ["A-2-3"]
    assert data["heldSeats"] == ["A-1-1"]
    assert data["blockedSeats"] == []
    assert data["myHolds"] == [{
        "seatId": "A-1-1",
        "sectionId": "A",
        "sectionName": "Section A",
        "row": "1",
        "number": "1",
        "heldUntil": "2026-06-01T12:05:00.000Z",
        "createdAt": "2026-06-01T12:00:00.000Z",
    }]


@pytest.mark.asyncio
async def test_reserve_seats_invalid(test_client, seated_event):
    response = await test_client.post(
        f"/events/{SEATED_EVENT_ID}/seats",
        json={"sessionId": "s1", "seats": [{"sectionId": "A", "row": "1-1", "number": "2"}]},
    )
    assert response.status_code == 400
    assert response.json()["violations"][0]["path"] == "seats.0"

    response = await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json={"sessionId": "s1", "seats": []})
    assert response.status_code == 400
    assert response.json()["error"] == "No seats specified"


@pytest.mark.asyncio
async def test_release_seats_endpoint(test_client, seated_event):
    await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s1", "A-1-1", "A-1-2"))

    response = await test_client.delete(
        f"/events/{SEATED_EVENT_ID}/seats", params={"sessionId": "s1", "seatIds": "A-1-1"}
    )

    assert response.status_code == 200
    assert response.json()["released"] == 1

    seats = (await test_client.get(f"/events/{SEATED_EVENT_ID}/seats")).json()
    assert seats["heldSeats"] == ["A-1-2"]


@pytest.mark.asyncio
async def test_admin_endpoints_require_auth(test_client, ga_event):
    """Test admin routes reject missing and non-admin tokens."""
    response = await test_client.get(f"/events/{GA_EVENT_ID}/inventory/blocks")
    assert response.status_code == 401
    data = response.json()
    assert data["status"] == 401
    assert "authentication" in data["title"].lower()

    response = await test_client.get(
        f"/events/{GA_EVENT_ID}/inventory/blocks",
        headers={"Authorization": f"Bearer {make_token(roles=['viewer'])}"},
    )
    assert response.status_code == 403

    response = await test_client.get(
        f"/events/{GA_EVENT_ID}/inventory/blocks",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_block_and_unblock_tickets(test_client, ga_event, admin_headers):
    """Test the block lifecycle through the admin API."""
    response = await test_client.post(
        f"/events/{GA_EVENT_ID}/inventory/blocks",
        json={"tickets": [{"tierId": "general", "quantity": 4}], "reason": "Sponsor allocation"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    block = response.json()["blocks"][0]
    assert block["unitId"] == "general"
    assert block["quantity"] == 4
    assert block["createdBy"] == "ops"

    availability = (await test_client.get(f"/events/{GA_EVENT_ID}/availability")).json()
    assert availability["totalBlocked"] == 4
    assert availability["totalAvailable"] == 11

    listing = await test_client.get(f"/events/{GA_EVENT_ID}/inventory/blocks", headers=admin_headers)
    assert listing.status_code == 200
    assert listing.json()["totalBlocked"] == 4

    response = await test_client.delete(
        f"/events/{GA_EVENT_ID}/inventory/blocks",
        params={"blockIds": block["id"], "reason": "Sponsor pulled out"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["unblocked"] == [block["id"]]

    availability = (await test_client.get(f"/events/{GA_EVENT_ID}/availability")).json()
    assert availability["totalAvailable"] == 15


@pytest.mark.asyncio
async def test_block_seats_hides_them(test_client, seated_event, admin_headers):
    response = await test_client.post(
        f"/events/{SEATED_EVENT_ID}/inventory/blocks",
        json={"seats": [{"sectionId": "A", "row": "1", "number": "3"}], "reason": "Camera position"},
        headers=admin_headers,
    )
    assert response.status_code == 201

    seats = (await test_client.get(f"/events/{SEATED_EVENT_ID}/seats")).json()
    assert seats["blockedSeats"] == ["A-1-3"]

    hold = await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s1", "A-1-3"))
    assert hold.status_code == 409


@pytest.mark.asyncio
async def test_block_request_validation(test_client, ga_event, admin_headers):
    both = {
        "tickets": [{"ticketTypeId": "general", "quantity": 1}],
        "seats": [{"sectionId": "A", "row": "1", "number": "1"}],
        "reason": "Press",
    }
    response = await test_client.post(f"/events/{GA_EVENT_ID}/inventory/blocks", json=both, headers=admin_headers)
    assert response.status_code == 400

    too_many = {"tickets": [{"ticketTypeId": "vip", "quantity": 6}], "reason": "Press"}
    response = await test_client.post(
        f"/events/{GA_EVENT_ID}/inventory/blocks", json=too_many, headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["conflicts"] == [{"unitId": "vip", "requested": 6, "available": 5}]


@pytest.mark.asyncio
async def test_unblock_bad_ids(test_client, ga_event, admin_headers):
    url = f"/events/{GA_EVENT_ID}/inventory/blocks"

    response = await test_client.delete(url, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Missing blockIds parameter"

    response = await test_client.delete(url, params={"blockIds": "nope"}, headers=admin_headers)
    assert response.status_code == 400

    response = await test_client.delete(url, params={"blockIds": str(uuid.uuid4())}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_adjust_capacity_endpoint(test_client, ga_event, admin_headers):
    """Test capacity changes and the floor set by held tickets."""
    url = f"/events/{GA_EVENT_ID}/inventory/capacity"

    response = await test_client.post(
        url, json={"tierId": "general", "adjustment": 5, "reason": "Extra floor space"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["ticketTypeId"] == "general"
    assert (data["previousCapacity"], data["newCapacity"]) == (10, 15)
    assert data["logId"]

    await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", vip=4))
    response = await test_client.post(
        url, json={"ticketTypeId": "vip", "adjustment": -2, "reason": "Smaller lounge"}, headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["conflicts"] == [{"ticketTypeId": "vip", "requestedCapacity": 3, "consumed": 4}]

    response = await test_client.post(
        url, json={"tierId": "vip", "adjustment": 0, "reason": "No-op"}, headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_seat_frees_up_after_hold_expires(test_client, seated_event, clock):
    """Test that an expired seat hold no longer blocks another session."""
    await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s1", "A-1-5"))

    response = await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s2", "A-1-5"))
    assert response.status_code == 409
    assert response.json()["conflicts"] == ["A-1-5"]

    clock.advance(300)
    response = await test_client.post(f"/events/{SEATED_EVENT_ID}/seats", json=_seats("s2", "A-1-5"))
    assert response.status_code == 200
    assert response.json()["heldSeats"] == ["A-1-5"]


@pytest.mark.asyncio
async def test_availability_lists_session_holds(test_client, ga_event, clock):
    """Test the GA availability view carries the caller's own holds."""
    await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s1", general=2))
    await test_client.post(f"/events/{GA_EVENT_ID}/availability", json=_tickets("s2", vip=1))

    response = await test_client.get(f"/events/{GA_EVENT_ID}/availability", params={"sessionId": "s1"})

    assert response.status_code == 200
    assert response.json()["myHolds"] == [{
        "holdId": hold_id(GA_EVENT_ID, "s1", "general"),
        "ticketTypeId": "general",
        "quantity": 2,
        "heldUntil": "2026-06-01T12:05:00.000Z",
        "createdAt": "2026-06-01T12:00:00.000Z",
    }]

    anonymous = (await test_client.get(f"/events/{GA_EVENT_ID}/availability")).json()
    assert anonymous["myHolds"] == []

    clock.advance(300)
    expired = (await test_client.get(f"/events/{GA_EVENT_ID}/availability", params={"sessionId": "s1"})).json()
    assert expired["myHolds"] == []


@pytest.mark.asyncio
async def test_underscored_tiers_and_sessions_keep_separate_holds(test_client, test_session):
    """Test holds whose ids would read the same when joined with underscores."""
    await create_ga_event(test_session, "evt-c", {"early_bird": 5, "bird": 5})

    first = await test_client.post("/events/evt-c/availability", json=_tickets("s", early_bird=2))
    second = await test_client.post("/events/evt-c/availability", json=_tickets("s_early", bird=3))

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["holdIds"] != second.json()["holdIds"]

    availability = (await test_client.get("/events/evt-c/availability")).json()
    assert availability["totalHeld"] == 5
    assert {item["ticketTypeId"]: item["held"] for item in availability["ticketTypes"]} == {
        "early_bird": 2,
        "bird": 3,
    }


@pytest.mark.asyncio
async def test_inventory_logs_endpoint(test_client, ga_event, admin_headers, clock):
    """Test the audit log lists admin changes newest first and filters them."""
    url = f"/events/{GA_EVENT_ID}/inventory/logs"

    await test_client.post(
        f"/events/{GA_EVENT_ID}/inventory/blocks",
        json={"tickets": [{"tierId": "general", "quantity": 2}], "reason": "Press"},
        headers=admin_headers,
    )
    clock.advance(1)
    await test_client.post(
        f"/events/{GA_EVENT_ID}/inventory/capacity",
        json={"tierId": "vip", "adjustment": 3, "reason": "Bigger lounge"},
        headers=admin_headers,
    )

    response = await test_client.get(url, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["eventId"] == GA_EVENT_ID
    assert [entry["action"] for entry in data["logs"]] == ["add_capacity", "block"]
    capacity_entry = data["logs"][0]
    assert capacity_entry["unitIds"] == ["vip"]
    assert (capacity_entry["previousValue"], capacity_entry["newValue"]) == (5, 8)
    assert capacity_entry["actor"] == "ops"

    filtered = (await test_client.get(url, params={"action": "block"}, headers=admin_headers)).json()
    assert [entry["quantityChange"] for entry in filtered["logs"]] == [-2]

    limited = (await test_client.get(url, params={"limit": 1}, headers=admin_headers)).json()
    assert len(limited["logs"]) == 1

    assert (await test_client.get(url)).status_code == 401
    assert (await test_client.get(url, params={"action": "explode"}, headers=admin_headers)).status_code == 400
    assert (await test_client.get(url, params={"type": "ga"}, headers=admin_headers)).status_code == 200
    missing = await test_client.get("/events/missing/inventory/logs", headers=admin_headers)
    assert missing.status_code == 404
