"""Service layer package."""

from .availability_service import AvailabilityService
from .block_service import BlockService
from .capacity_service import CapacityService
from .hold_service import HoldService
from .sold_ledger import SoldLedger
from .sweeper import HoldSweeper

__all__ = [
    "AvailabilityService",
    "BlockService",
    "CapacityService",
    "HoldService",
    "HoldSweeper",
    "SoldLedger",
]
