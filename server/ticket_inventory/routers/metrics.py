"""Prometheus scrape endpoint for inventory and HTTP metrics."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Hold, conflict, retry, sweep and block counters plus HTTP request metrics",
    response_class=Response,
)
async def metrics() -> Response:
    """Return the service registry in Prometheus text format."""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
