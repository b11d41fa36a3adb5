"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "ticket-inventory-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Inventory metrics
HOLDS_CREATED = Counter(
    'inventory_holds_created_total',
    'Holds written by successful reservations',
    ['unit_type'],
    registry=REGISTRY
)

RESERVATION_CONFLICTS = Counter(
    'inventory_reservation_conflicts_total',
    'Reservations rejected for insufficient inventory',
    ['unit_type'],
    registry=REGISTRY
)

TRANSACTION_RETRIES = Counter(
    'inventory_transaction_retries_total',
    'Inventory transactions retried after contention',
    ['operation'],
    registry=REGISTRY
)

HOLDS_RELEASED = Counter(
    'inventory_holds_released_total',
    'Holds deleted by explicit release',
    registry=REGISTRY
)

HOLDS_SWEPT = Counter(
    'inventory_holds_swept_total',
    'Expired holds deleted by the sweeper',
    registry=REGISTRY
)

SWEEP_FAILURES = Counter(
    'inventory_sweep_failures_total',
    'Sweeper runs that failed',
    registry=REGISTRY
)

BLOCKS_CHANGED = Counter(
    'inventory_admin_blocks_total',
    'Admin block records created or removed',
    ['action'],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())

    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics export when a collector is configured."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument the SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for inventory metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    @staticmethod
    def record_holds_created(unit_type: str, count: int):
        HOLDS_CREATED.labels(unit_type=unit_type).inc(count)

    @staticmethod
    def record_reservation_conflict(unit_type: str):
        RESERVATION_CONFLICTS.labels(unit_type=unit_type).inc()

    @staticmethod
    def record_transaction_retry(operation: str):
        TRANSACTION_RETRIES.labels(operation=operation).inc()

    @staticmethod
    def record_holds_released(count: int):
        HOLDS_RELEASED.inc(count)

    @staticmethod
    def record_holds_swept(count: int):
        HOLDS_SWEPT.inc(count)

    @staticmethod
    def record_sweep_failure():
        SWEEP_FAILURES.inc()

    @staticmethod
    def record_blocks(action: str, count: int):
        BLOCKS_CHANGED.labels(action=action).inc(count)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
