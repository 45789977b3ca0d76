"""Unit tests for tracing of bucket operations."""

from __future__ import annotations

from typing import Generator

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from expay.adapters.outbound.storage_engine import StorageEngine
from expay.domain.errors import NotFoundError
from expay.domain.value_objects import sequence_to_id
from expay.infrastructure import tracing
from expay.infrastructure.tracing import bucket_span, trace_span


@pytest.fixture
def spans(monkeypatch: pytest.MonkeyPatch) -> Generator[InMemorySpanExporter, None, None]:
    """Collect finished spans in memory for one test."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("test"))
    yield exporter
    provider.shutdown()


@pytest.mark.unit
class TestTraceSpan:
    """Tests for trace_span and bucket_span."""

    def test_attributes(self, spans: InMemorySpanExporter) -> None:
        with trace_span("work", size=3):
            pass

        (span,) = spans.get_finished_spans()
        assert span.name == "work"
        assert span.attributes["size"] == 3

    def test_bucket_span(self, spans: InMemorySpanExporter) -> None:
        with bucket_span("payment", "get"):
            pass

        (span,) = spans.get_finished_spans()
        assert span.name == "bucket.get"
        assert span.attributes["expay.bucket"] == "payment"
        assert span.attributes["expay.operation"] == "get"

    def test_exception_recorded(self, spans: InMemorySpanExporter) -> None:
        with pytest.raises(RuntimeError):
            with trace_span("work"):
                raise RuntimeError("boom")

        (span,) = spans.get_finished_spans()
        assert not span.status.is_ok
        assert span.events[0].name == "exception"


@pytest.mark.unit
class TestBucketTracing:
    """Bucket operations run inside spans."""

    def test_operations_traced(self, spans: InMemorySpanExporter, engine: StorageEngine) -> None:
        bucket = engine.bucket("items", int)
        record_id = bucket.create(1)
        bucket.get(record_id)
        with pytest.raises(NotFoundError):
            bucket.get(sequence_to_id(9))

        names = [span.name for span in spans.get_finished_spans()]
        assert names == ["bucket.create", "bucket.get", "bucket.get"]
        assert all(
            span.attributes["expay.bucket"] == "items" for span in spans.get_finished_spans()
        )
