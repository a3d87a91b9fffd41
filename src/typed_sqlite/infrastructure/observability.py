"""Process-level observability bootstrap driven by configuration."""

from __future__ import annotations

from typed_sqlite.infrastructure import metrics, tracing
from typed_sqlite.infrastructure.config import ObservabilityConfig, get_config
from typed_sqlite.infrastructure.logging import get_logger, setup_logging


def setup_observability(
    config: ObservabilityConfig | None = None,
    log_level: str | None = None,
) -> None:
    """
    Configure logging, then tracing and metrics when they are enabled.

    Tracing starts only with an ``otel_endpoint``; the metrics exporter
    only with a ``metrics_port``.

    Args:
        config: Observability settings (default: from the environment)
        log_level: Overrides ``config.log_level``
    """
    config = config or get_config().observability
    setup_logging(level=log_level or config.log_level, log_format=config.log_format)

    if config.otel_endpoint:
        tracing.setup_tracing(config.otel_service_name, config.otel_endpoint)
    if config.metrics_port is not None:
        metrics.setup_metrics(config.metrics_port)

    get_logger(__name__).debug(
        "observability_configured",
        tracing=bool(config.otel_endpoint),
        metrics_port=config.metrics_port,
    )
