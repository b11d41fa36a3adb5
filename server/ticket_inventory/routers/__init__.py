"""FastAPI routers package."""

from .availability import router as availability_router
from .health import router as health_router
from .inventory import router as inventory_router
from .metrics import router as metrics_router
from .seats import router as seats_router

__all__ = [
    "availability_router",
    "health_router",
    "inventory_router",
    "metrics_router",
    "seats_router",
]
