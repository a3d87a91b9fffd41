"""Unit tests for the global metrics registry."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from prometheus_client import REGISTRY, CollectorRegistry

from typed_sqlite.infrastructure import metrics
from typed_sqlite.infrastructure.metrics import get_metrics, set_metrics, setup_metrics


@pytest.fixture
def no_server(monkeypatch: pytest.MonkeyPatch) -> Generator[list[int], None, None]:
    """Record exporter ports instead of binding sockets."""
    ports: list[int] = []
    monkeypatch.setattr(metrics, "start_http_server", lambda port, registry: ports.append(port))
    yield ports
    set_metrics(None)


@pytest.mark.unit
class TestGlobalMetrics:
    """Tests for get_metrics, set_metrics and setup_metrics."""

    def test_default_is_reused(self) -> None:
        """The default registry is created once."""
        assert get_metrics() is get_metrics()
        assert get_metrics().registry is REGISTRY

    def test_reset_keeps_default(self) -> None:
        """Removing an override returns to the same default registry."""
        default = get_metrics()
        set_metrics(metrics.MetricsRegistry(CollectorRegistry()))
        assert get_metrics() is not default
        set_metrics(None)
        assert get_metrics() is default

    def test_setup_after_use(self, no_server: list[int]) -> None:
        """Starting the exporter after metrics were recorded reuses them."""
        default = get_metrics()
        default.connections_opened_total.labels(status="success").inc()
        assert setup_metrics(port=9464) is default
        assert no_server == [9464]

    def test_setup_with_custom_registry(self, no_server: list[int]) -> None:
        """A custom registry gets its own metrics."""
        registry = CollectorRegistry()
        installed = setup_metrics(port=9465, registry=registry)
        assert installed.registry is registry
        assert get_metrics() is installed
