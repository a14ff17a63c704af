"""OpenTelemetry tracing configuration.

Every record store operation runs inside one span named
``record_store.<operation>``. The current span lives in a contextvar, so it
follows the coroutine across awaits; spans of concurrent operations do not
nest into each other.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from redis_schema import __version__

INSTRUMENTATION_NAME = "redis_schema"

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "redis_schema",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install a tracer provider and return the record store tracer.

    Args:
        service_name: ``service.name`` resource attribute
        otlp_endpoint: gRPC collector endpoint, e.g. "http://localhost:4317";
            spans are not exported when omitted
        console_export: Also print finished spans to stdout
    """
    global _tracer

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__})
    )
    exporters = []
    if otlp_endpoint:
        exporters.append(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
    if console_export:
        exporters.append(ConsoleSpanExporter())
    for exporter in exporters:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(INSTRUMENTATION_NAME, __version__)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Return the configured tracer, or one from the global provider."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(INSTRUMENTATION_NAME, __version__)
    return _tracer


@contextmanager
def trace_span(name: str, attributes: dict[str, Any] | None = None) -> Iterator[trace.Span]:
    """Open a span as the current one.

    An exception leaving the block is recorded on the span and marks it as
    failed before propagating.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        yield span
