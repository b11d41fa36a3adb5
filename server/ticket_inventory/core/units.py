"""Sellable unit identity.

A sellable unit is either a general-admission tier, identified by its tier id,
or a single reserved seat, identified by ``"{section_id}-{row}-{number}"``.
Every component builds seat ids through :func:`seat_unit_id`.
"""

import uuid
from dataclasses import dataclass
from enum import Enum

SEAT_ID_SEPARATOR = "-"

# Pseudo unit id used to report a breach of the event-level ceiling
TOTAL_UNIT_ID = "_total"

HOLD_ID_NAMESPACE = uuid.UUID("6f1c2a9e-4b7d-5e3a-9c0f-2d8b6a4e1f73")


class UnitType(str, Enum):
    """Addressing scheme of a sellable unit."""
    GA = "ga"
    RESERVED = "reserved"


def _part(value: object, name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError(f"Seat {name} must not be empty")
    return text


def seat_unit_id(section_id: object, row: object, number: object) -> str:
    """Build the canonical seat id from its coordinates."""
    row_text = _part(row, "row")
    number_text = _part(number, "number")
    if SEAT_ID_SEPARATOR in row_text or SEAT_ID_SEPARATOR in number_text:
        raise ValueError(f"Seat row and number must not contain '{SEAT_ID_SEPARATOR}'")
    return SEAT_ID_SEPARATOR.join((_part(section_id, "section"), row_text, number_text))


def parse_seat_unit_id(seat_id: str) -> tuple[str, str, str]:
    """Split a seat id into (section_id, row, number).

    Splits from the right, so section ids may contain the separator.
    """
    parts = seat_id.rsplit(SEAT_ID_SEPARATOR, 2)
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Malformed seat id '{seat_id}'")
    section_id, row, number = parts
    return section_id, row, number


def hold_id(event_id: str, session_id: str, unit_id: str) -> str:
    """
    Deterministic hold id; one hold per (event, session, unit).

    Each part is length-prefixed before hashing, so ids, session ids and unit
    ids may contain any character without two triples sharing a hold id.
    """
    key = "".join(f"{len(part)}:{part}" for part in (event_id, session_id, unit_id))
    return str(uuid.uuid5(HOLD_ID_NAMESPACE, key))


@dataclass(frozen=True)
class UnitRequest:
    """A quantity of one sellable unit asked for by a checkout session."""

    unit_id: str
    quantity: int = 1
