"""Infrastructure layer - cross-cutting concerns."""

from typed_sqlite.infrastructure.config import Config, get_config
from typed_sqlite.infrastructure.logging import setup_logging, get_logger
from typed_sqlite.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from typed_sqlite.infrastructure.tracing import setup_tracing, get_tracer, trace_span
from typed_sqlite.infrastructure.observability import setup_observability

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
    "setup_observability",
]
