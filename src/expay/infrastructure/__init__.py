"""Infrastructure layer - cross-cutting concerns."""

from expay.infrastructure.config import Config, get_config
from expay.infrastructure.logging import setup_logging, get_logger
from expay.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from expay.infrastructure.tracing import bucket_span, setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "bucket_span",
]
