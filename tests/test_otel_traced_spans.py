from __future__ import annotations
import asyncio

import pytest

pytest.importorskip("opentelemetry.sdk")

from opentelemetry.sdk.trace import TracerProvider  # noqa: E402
from opentelemetry.sdk.trace.export import SimpleSpanProcessor  # noqa: E402
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (  # noqa: E402
    InMemorySpanExporter,
)
from opentelemetry.trace import StatusCode  # noqa: E402

from pacing_core.otel_runtime import retry_traced_optional  # noqa: E402


@pytest.fixture
def spans():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter, provider.get_tracer("tests")


@pytest.mark.asyncio
async def test_attempts_are_child_spans_of_the_retry(spans):
    exporter, tracer = spans
    calls = []

    async def op():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("flaky")
        return "ok"

    out = await retry_traced_optional(
        op,
        lambda v, e, a: e is not None,
        otel_enabled=True,
        tracer=tracer,
        base_attrs={"job": "sync", "skipped": None},
    )
    assert out == "ok"

    finished = exporter.get_finished_spans()
    root = next(s for s in finished if s.name == "pacing.retry")
    attempts = [s for s in finished if s.name == "pacing.retry.attempt"]

    assert len(attempts) == 2
    assert all(s.parent.span_id == root.context.span_id for s in attempts)
    assert [s.attributes["pacing.attempt.number"] for s in attempts] == [1, 2]
    assert [s.attributes["pacing.attempt.outcome"] for s in attempts] == ["error", "success"]

    assert root.attributes["pacing.attempts"] == 2
    assert root.attributes["pacing.outcome"] == "success"
    assert root.attributes["job"] == "sync"
    assert "skipped" not in root.attributes

    decisions = [e.attributes["pacing.decision"] for e in root.events if e.name == "pacing.decision"]
    assert decisions == ["retry_now", "stop"]


@pytest.mark.asyncio
async def test_final_failure_marks_root_span(spans):
    exporter, tracer = spans

    async def op():
        raise RuntimeError("always")

    with pytest.raises(RuntimeError, match="always"):
        await retry_traced_optional(op, lambda v, e, a: False, otel_enabled=True, tracer=tracer)

    root = next(s for s in exporter.get_finished_spans() if s.name == "pacing.retry")
    assert root.attributes["pacing.outcome"] == "error"
    assert root.attributes["pacing.attempts"] == 1
    assert root.status.status_code == StatusCode.ERROR


@pytest.mark.asyncio
async def test_delay_answers_are_labelled(spans, clock):
    exporter, tracer = spans
    answers = iter([250, False])

    async def op():
        return clock.now()

    task = asyncio.ensure_future(
        retry_traced_optional(
            op,
            lambda v, e, a: next(answers),
            scheduler=clock,
            otel_enabled=True,
            tracer=tracer,
        )
    )
    await clock.run_all()
    assert await task == 250

    root = next(s for s in exporter.get_finished_spans() if s.name == "pacing.retry")
    decisions = [e.attributes["pacing.decision"] for e in root.events if e.name == "pacing.decision"]
    assert decisions == ["retry_after", "stop"]
