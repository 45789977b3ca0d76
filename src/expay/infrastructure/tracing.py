"""OpenTelemetry tracing for bucket operations.

Every bucket call runs in a ``bucket.<operation>`` span tagged with the
bucket name, so a slow request can be followed down to the transaction
that served it. Spans are exported only when a collector endpoint is
configured; otherwise the API's no-op tracer makes them free.
"""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from typing import Generator

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.util.types import AttributeValue


_tracer: trace.Tracer | None = None


def setup_tracing(service_name: str, otlp_endpoint: str) -> trace.Tracer:
    """
    Export spans to an OTLP collector.

    Args:
        service_name: Service name reported to the collector
        otlp_endpoint: Collector endpoint (e.g., "http://localhost:4317")

    Returns:
        The service tracer
    """
    global _tracer

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    from expay import __version__

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": service_name, "service.version": __version__}
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the service tracer, falling back to the global provider's."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("expay")
    return _tracer


@contextmanager
def trace_span(name: str, **attributes: AttributeValue) -> Generator[trace.Span, None, None]:
    """Run a block inside a span carrying ``attributes``.

    Exceptions are recorded on the span and re-raised.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes or None) as span:
        yield span


def bucket_span(bucket: str, operation: str) -> AbstractContextManager[trace.Span]:
    """Span for one bucket operation, e.g. ``bucket.create``."""
    return trace_span(
        f"bucket.{operation}",
        **{"expay.bucket": bucket, "expay.operation": operation},
    )
