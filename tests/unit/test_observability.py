"""Unit tests for the observability bootstrap."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from typed_sqlite.infrastructure import metrics, tracing
from typed_sqlite.domain.errors import StepError
from typed_sqlite.infrastructure.config import ObservabilityConfig
from typed_sqlite.infrastructure.logging import MAX_SQL_LENGTH, shorten_sql
from typed_sqlite.infrastructure.observability import setup_observability


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, Any], None, None]:
    """Record exporter setup instead of starting servers."""
    recorded: dict[str, Any] = {}
    monkeypatch.setattr(
        tracing, "setup_tracing", lambda name, endpoint: recorded.update(tracing=(name, endpoint))
    )
    monkeypatch.setattr(metrics, "setup_metrics", lambda port: recorded.update(metrics=port))
    yield recorded
    structlog.reset_defaults()


@pytest.mark.unit
class TestSetupObservability:
    """Tests for setup_observability."""

    def test_logging_only_by_default(self, calls: dict[str, Any]) -> None:
        """Without endpoint or port only logging is configured."""
        setup_observability(ObservabilityConfig())
        assert calls == {}
        assert structlog.is_configured()

    def test_tracing_with_endpoint(self, calls: dict[str, Any]) -> None:
        """An OTLP endpoint enables tracing."""
        config = ObservabilityConfig(otel_endpoint="http://localhost:4317", otel_service_name="svc")
        setup_observability(config)
        assert calls == {"tracing": ("svc", "http://localhost:4317")}

    def test_metrics_with_port(self, calls: dict[str, Any]) -> None:
        """A metrics port starts the exporter."""
        setup_observability(ObservabilityConfig(metrics_port=9464), log_level="ERROR")
        assert calls == {"metrics": 9464}


@pytest.mark.unit
class TestShortenSql:
    """Tests for the SQL log processor."""

    def test_collapses_whitespace(self) -> None:
        """Multi-line SQL logs on one line."""
        event = shorten_sql(None, "debug", {"sql": "SELECT 1\n  FROM t"})
        assert event["sql"] == "SELECT 1 FROM t"

    def test_truncates(self) -> None:
        """Long statements are capped."""
        event = shorten_sql(None, "debug", {"db.statement": "x" * 1000})
        assert len(event["db.statement"]) == MAX_SQL_LENGTH
        assert event["db.statement"].endswith("...")

    def test_other_keys_untouched(self) -> None:
        """Non-SQL fields pass through."""
        assert shorten_sql(None, "debug", {"code": 1}) == {"code": 1}


@pytest.fixture
def spans(monkeypatch: pytest.MonkeyPatch) -> InMemorySpanExporter:
    """Route trace_span into an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("test"))
    return exporter


@pytest.mark.unit
class TestTraceSpan:
    """Tests for database spans."""

    def test_attributes(self, spans: InMemorySpanExporter) -> None:
        """Spans carry the system and the normalized statement."""
        with tracing.trace_span("sqlite.prepare", {"extra": 1}, statement="SELECT\n  1"):
            pass
        (span,) = spans.get_finished_spans()
        assert span.name == "sqlite.prepare"
        assert span.attributes["db.system"] == "sqlite"
        assert span.attributes["db.statement"] == "SELECT 1"
        assert span.attributes["extra"] == 1

    def test_engine_error_code(self, spans: InMemorySpanExporter) -> None:
        """Engine errors add their result code and propagate."""
        with pytest.raises(StepError):
            with tracing.trace_span("sqlite.execute"):
                raise StepError(19, "constraint failed")
        (span,) = spans.get_finished_spans()
        assert span.attributes["db.sqlite.result_code"] == 19
        assert not span.status.is_ok
