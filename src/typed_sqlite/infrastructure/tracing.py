"""OpenTelemetry tracing configuration."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter


_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "typed_sqlite",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Set up OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP collector endpoint (e.g., "http://localhost:4317")
        console_export: Whether to also export to console (for debugging)

    Returns:
        Configured tracer instance
    """
    global _tracer

    from typed_sqlite import __version__

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if console_export:
        console_exporter = ConsoleSpanExporter()
        provider.add_span_processor(BatchSpanProcessor(console_exporter))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)

    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("typed_sqlite")
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
    *,
    statement: str | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for creating a database client span.

    Every span carries ``db.system=sqlite``. Exceptions are recorded by
    the SDK; an engine result code on the exception is added as
    ``db.sqlite.result_code``.

    Args:
        name: Name of the span
        attributes: Optional attributes to add to the span
        statement: SQL text, recorded as ``db.statement``

    Yields:
        The created span
    """
    span_attributes: dict[str, Any] = {"db.system": "sqlite"}
    if statement is not None:
        span_attributes["db.statement"] = " ".join(statement.split())
    if attributes:
        span_attributes.update(attributes)

    tracer = get_tracer()
    with tracer.start_as_current_span(name, attributes=span_attributes) as span:
        try:
            yield span
        except Exception as e:
            code = getattr(e, "code", None)
            if isinstance(code, int):
                span.set_attribute("db.sqlite.result_code", code)
            raise
