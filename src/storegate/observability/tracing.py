"""OpenTelemetry setup for storegate.

Tracing is off unless STOREGATE_OTEL_ENABLED=1.

Environment Variables:
    STOREGATE_OTEL_ENABLED: "1" to enable tracing
    STOREGATE_REQUIRE_OTEL: "1" to raise TracingConfigError if setup fails
    STOREGATE_OTEL_SERVICE_NAME: service.name resource attribute (default: "storegate")
    STOREGATE_OTEL_EXPORTER: "otlp" or "console" (default: "otlp")
    STOREGATE_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP traces endpoint
    STOREGATE_OTEL_TEST_CAPTURE: "1" to collect spans in memory (tests)

Spans carry bucket names and key digests; object keys, credentials and
bodies are never exported.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, SpanProcessor, TracerProvider
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

logger = logging.getLogger(__name__)

_TRUE = frozenset({"1", "true", "yes"})

_provider: TracerProvider | None = None
_memory_exporter: InMemorySpanExporter | None = None


class TracingConfigError(Exception):
    """Tracing setup failed while STOREGATE_REQUIRE_OTEL=1."""


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUE


def is_tracing_enabled() -> bool:
    return _flag("STOREGATE_OTEL_ENABLED")


def _span_processor(test_capture: bool) -> SpanProcessor:
    global _memory_exporter

    from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

    if test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        _memory_exporter = InMemorySpanExporter()
        return SimpleSpanProcessor(_memory_exporter)

    if os.environ.get("STOREGATE_OTEL_EXPORTER", "otlp").strip() == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        return SimpleSpanProcessor(ConsoleSpanExporter())

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    endpoint = os.environ.get("STOREGATE_OTEL_EXPORTER_OTLP_ENDPOINT", "").strip()
    exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
    return BatchSpanProcessor(exporter)


def configure_tracing() -> bool:
    """Install the global TracerProvider once, if tracing is enabled.

    Later calls are no-ops. The global provider cannot be replaced once set,
    so a process keeps whichever exporter it configured first.

    Returns:
        True if tracing is enabled and a provider is installed.

    Raises:
        TracingConfigError: If setup fails and STOREGATE_REQUIRE_OTEL=1.
    """
    global _provider

    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing disabled")
        return False
    if _provider is not None:
        return True

    test_capture = _flag("STOREGATE_OTEL_TEST_CAPTURE")
    service_name = os.environ.get("STOREGATE_OTEL_SERVICE_NAME", "").strip() or "storegate"

    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider

        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
        provider.add_span_processor(_span_processor(test_capture))
        trace.set_tracer_provider(provider)
    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if _flag("STOREGATE_REQUIRE_OTEL"):
            raise TracingConfigError(f"Tracing required but setup failed: {e}") from e
        return False

    _provider = provider
    logger.info(
        "OpenTelemetry tracing configured: service=%s exporter=%s",
        service_name,
        "in-memory" if test_capture else os.environ.get("STOREGATE_OTEL_EXPORTER", "otlp"),
    )
    return True


def instrument_fastapi(app: Any) -> None:
    """Attach FastAPI server spans; /health is excluded."""
    if not is_tracing_enabled():
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def get_current_trace_id() -> str | None:
    """Hex trace ID of the active span, for log correlation; None outside a span."""
    ctx = trace.get_current_span().get_span_context()
    return format(ctx.trace_id, "032x") if ctx.is_valid else None


def get_test_spans() -> list[ReadableSpan]:
    """Finished spans collected with STOREGATE_OTEL_TEST_CAPTURE=1."""
    if _memory_exporter is None:
        return []
    return list(_memory_exporter.get_finished_spans())


def clear_test_spans() -> None:
    if _memory_exporter is not None:
        _memory_exporter.clear()


def reset_tracing() -> None:
    """Drop captured spans between tests.

    The provider itself stays installed; OpenTelemetry allows setting the
    global provider only once per process.
    """
    clear_test_spans()
