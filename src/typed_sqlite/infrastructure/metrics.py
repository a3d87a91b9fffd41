"""Prometheus metrics for the typed SQLite layer."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all typed SQLite metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Connection metrics
        self.connections_opened_total = Counter(
            "sqlite_connections_opened_total",
            "Total number of connections opened",
            ["status"],  # success, error
            registry=self._registry,
        )

        self.connections_active = Gauge(
            "sqlite_connections_active",
            "Number of open connections",
            registry=self._registry,
        )

        # Statement metrics
        self.statements_prepared_total = Counter(
            "sqlite_statements_prepared_total",
            "Total number of statements prepared",
            ["status"],  # success, error
            registry=self._registry,
        )

        self.statements_active = Gauge(
            "sqlite_statements_active",
            "Number of prepared statements not yet finalized",
            registry=self._registry,
        )

        self.steps_total = Counter(
            "sqlite_steps_total",
            "Total statement steps",
            ["outcome"],  # row, done, error
            registry=self._registry,
        )

        self.execute_latency_seconds = Histogram(
            "sqlite_execute_latency_seconds",
            "One-shot execute latency in seconds",
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Transaction metrics
        self.transactions_total = Counter(
            "sqlite_transactions_total",
            "Total number of transactions",
            ["outcome"],  # commit, rollback
            registry=self._registry,
        )

        # Error metrics
        self.errors_total = Counter(
            "sqlite_errors_total",
            "Total errors raised, by error class",
            ["kind"],
            registry=self._registry,
        )

        # Engine info
        self.info = Info(
            "sqlite_engine",
            "Linked SQLite engine information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Metrics on the process-wide REGISTRY; created at most once
_default_metrics: MetricsRegistry | None = None

# Installed override, if any
_metrics: MetricsRegistry | None = None


def _default() -> MetricsRegistry:
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = MetricsRegistry()
    return _default_metrics


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    The metrics already registered on ``registry`` are reused, so this is
    safe to call after connections have been opened.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    if registry is None or registry is REGISTRY:
        _metrics = _default()
    elif _metrics is None or _metrics.registry is not registry:
        _metrics = MetricsRegistry(registry)

    from typed_sqlite import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=_metrics.registry)

    return _metrics


def set_metrics(metrics: MetricsRegistry | None) -> None:
    """Install ``metrics`` as the global registry; None restores the default."""
    global _metrics
    _metrics = metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    return _metrics if _metrics is not None else _default()
