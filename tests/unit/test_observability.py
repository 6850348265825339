"""Unit Tests - Log processors and tracing helpers."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from src.core.errors import AppError, ValidationError
from src.services.observability import traced_span
from src.utils.logger import REDACTED, add_trace_context, redact_secrets


@pytest.fixture
def exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer(exporter: InMemorySpanExporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider.get_tracer("test")


class TestLogProcessors:
    def test_redacts_secrets(self) -> None:
        event = redact_secrets(
            None,
            "info",
            {"event": "x", "code": "123456", "secret": "ABC", "user_id": "u1"},
        )

        assert event["code"] == REDACTED
        assert event["secret"] == REDACTED
        assert event["user_id"] == "u1"

    def test_none_left_alone(self) -> None:
        event = redact_secrets(None, "info", {"event": "x", "token": None})

        assert event["token"] is None

    def test_no_trace_outside_span(self) -> None:
        event = add_trace_context(None, "info", {"event": "x"})

        assert "trace_id" not in event

    def test_trace_ids_inside_span(self, tracer) -> None:
        with tracer.start_as_current_span("s") as span:
            event = add_trace_context(None, "info", {"event": "x"})

        assert event["trace_id"] == format(span.get_span_context().trace_id, "032x")
        assert len(event["span_id"]) == 16


class TestTracedSpan:
    """Tests for the span helper used by the route handlers."""

    def test_attributes_skip_none(self, tracer, exporter: InMemorySpanExporter) -> None:
        with traced_span(tracer, "occupied_slots", company_id="c1", period=None):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "occupied_slots"
        assert dict(span.attributes) == {"company_id": "c1"}

    def test_client_error_not_marked(self, tracer, exporter: InMemorySpanExporter) -> None:
        with pytest.raises(ValidationError):
            with traced_span(tracer, "s"):
                raise ValidationError("Código é obrigatório")

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.UNSET
        assert not span.events

    def test_server_error_recorded(self, tracer, exporter: InMemorySpanExporter) -> None:
        with pytest.raises(AppError):
            with traced_span(tracer, "s"):
                raise AppError("Erro interno do servidor")

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"
