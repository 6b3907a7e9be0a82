"""OpenTelemetry tracing setup (OTLP over HTTP when enabled, no-op tracer otherwise)."""

import logging

from stock_sync.config import (
    DEPLOYMENT_ENVIRONMENT,
    OTLP_TRACES_ENDPOINT,
    SERVICE_NAME,
    TRACING_ENABLED,
)

logger = logging.getLogger(__name__)
_initialized = False
_tracer_provider = None

TRACER_NAME = "stock-sync"
TRACER_VERSION = "0.1.0"


def _build_resource():
    """Build Resource with service identity."""
    from opentelemetry.sdk.resources import Resource

    return Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.version": TRACER_VERSION,
            "deployment.environment": DEPLOYMENT_ENVIRONMENT,
        }
    )


def _build_provider():
    """Build a TracerProvider exporting batches to the OTLP/HTTP endpoint."""
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    endpoint = OTLP_TRACES_ENDPOINT.rstrip("/")
    if not endpoint.endswith("/v1/traces"):
        endpoint = f"{endpoint}/v1/traces"

    provider = TracerProvider(resource=_build_resource())
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    return provider


def init_tracing() -> None:
    """Initialize OTLP tracing (call once at startup). No-op unless TRACING_ENABLED."""
    global _initialized, _tracer_provider
    if _initialized or not TRACING_ENABLED:
        return

    _tracer_provider = _build_provider()
    _initialized = True
    logger.info("Tracing enabled, exporting to %s", OTLP_TRACES_ENDPOINT)


def get_tracer():
    """Return the OpenTelemetry tracer (no-op until init_tracing has run)."""
    from opentelemetry import trace

    return trace.get_tracer(TRACER_NAME, TRACER_VERSION)


def shutdown_tracing() -> None:
    """Flush and shutdown the tracer provider so spans are exported before process exit."""
    global _initialized, _tracer_provider
    if _tracer_provider is None:
        return
    _tracer_provider.force_flush(timeout_millis=5000)
    _tracer_provider.shutdown()
    _tracer_provider = None
    _initialized = False
