"""Observability - OpenTelemetry tracing for the booking API."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Status, StatusCode

from src.config.settings import Settings, get_settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "booky-api"

# Health probes would drown the interesting spans
EXCLUDED_URLS = "health"


def setup_tracing(settings: Settings | None = None) -> TracerProvider | None:
    """Install a TracerProvider exporting spans over OTLP/HTTP.

    Returns:
        The installed provider, or None when tracing is off.
    """
    settings = settings or get_settings()

    if not settings.enable_tracing or not settings.otlp_endpoint:
        logger.info("tracing_disabled")
        return None

    resource = Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.version": "1.0.0",
            "deployment.environment": settings.app_env,
        }
    )
    provider = TracerProvider(resource=resource)

    try:
        exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
    except Exception as e:
        logger.warning("tracing_setup_failed", error=str(e))
        return None

    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    logger.info("tracing_configured", otlp_endpoint=settings.otlp_endpoint)
    return provider


def instrument_fastapi(app: FastAPI, settings: Settings | None = None) -> None:
    """Attach the FastAPI instrumentation when tracing is on."""
    settings = settings or get_settings()
    if not settings.enable_tracing:
        return

    FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)
    logger.info("fastapi_instrumented")


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


@contextmanager
def traced_span(tracer: trace.Tracer, name: str, **attributes: Any) -> Iterator[Span]:
    """Open a span with the given attributes (None values skipped).

    Client errors (exceptions carrying a ``status_code`` below 500) leave
    the span status untouched; anything else is recorded as an error.
    """
    with tracer.start_as_current_span(
        name, record_exception=False, set_status_on_exception=False
    ) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            if getattr(e, "status_code", 500) >= 500:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, type(e).__name__))
            raise


def get_current_trace_id() -> str | None:
    """Trace ID of the active span as hex, or None."""
    span = trace.get_current_span()
    if span and span.get_span_context().is_valid:
        return format(span.get_span_context().trace_id, "032x")
    return None
