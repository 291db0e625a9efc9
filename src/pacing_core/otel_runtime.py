from __future__ import annotations

import inspect
import os
import time
from typing import Any, Dict, Optional

from .classify import classify_decision
from .core import retry
from .types import OperationProducer, RetryAfter, RetryNow, Scheduler, ShouldRetry


# --- Helpers for env flags ----------------------------------------------------


def _otel_enabled(explicit: Optional[bool]) -> bool:
    if explicit is not None:
        return explicit
    return os.getenv("PACING_OTEL_ENABLED", "").lower() in {"1", "true", "yes", "on"}


def _metrics_enabled() -> bool:
    return os.getenv("PACING_OTEL_METRICS_ENABLED", "").lower() in {
        "1",
        "true",
        "yes",
        "on",
    }


# --- Metrics plumbing (lazy / optional) --------------------------------------

try:
    from opentelemetry import metrics as _otel_metrics  # type: ignore[attr-defined]
except Exception:  # pragma: no cover - OTEL not installed
    _otel_metrics = None  # type: ignore[assignment]

_ops_counter = None
_attempts_counter = None
_duration_histogram = None
_metrics_instruments_ready = False


def _ensure_metrics() -> None:
    """
    Lazily create metric instruments if metrics are enabled and OTEL is available.
    Safe to call multiple times.
    """
    global _ops_counter, _attempts_counter, _duration_histogram, _metrics_instruments_ready

    if _metrics_instruments_ready or not _metrics_enabled() or _otel_metrics is None:
        return

    meter = _otel_metrics.get_meter(__name__)

    _ops_counter = meter.create_counter(
        "pacing_operations_total",
        description="Total number of retried operations.",
    )
    _attempts_counter = meter.create_counter(
        "pacing_attempts_total",
        description="Total number of attempts (first tries and retries).",
    )
    _duration_histogram = meter.create_histogram(
        "pacing_operation_duration_seconds",
        description="Time from the first attempt to the final outcome.",
        unit="s",
    )

    _metrics_instruments_ready = True


def _decision_label(answer: Any) -> str:
    decision = classify_decision(answer)
    if isinstance(decision, RetryNow):
        return "retry_now"
    if isinstance(decision, RetryAfter):
        return "retry_after"
    return "stop"


# --- Traced retry -------------------------------------------------------------


async def retry_traced_optional(
    op: OperationProducer,
    should_retry: ShouldRetry,
    *,
    scheduler: Optional[Scheduler] = None,
    # tracing knobs (all optional)
    otel_enabled: Optional[bool] = None,  # None -> read env PACING_OTEL_ENABLED
    span_name: str = "pacing.retry",
    base_attrs: Optional[Dict[str, Any]] = None,
    tracer: Any = None,  # defaults to the global tracer provider
) -> Any:
    """
    Await `retry(op, should_retry)` with tracing *if* OpenTelemetry is
    installed and enabled. Otherwise behaves exactly like awaiting `retry()`.

    Spans: one root span for the whole retry, one child span per attempt,
    and a `pacing.decision` event on the root for every policy answer.

    When PACING_OTEL_METRICS_ENABLED=1 (and OTEL metrics are available),
    this also emits:
      - pacing_operations_total
      - pacing_attempts_total
      - pacing_operation_duration_seconds
    """
    # Fast path: OTEL disabled entirely -> no tracing, no metrics
    if not _otel_enabled(otel_enabled):
        return await retry(op, should_retry, scheduler=scheduler)

    # Lazy import so this module stays importable without otel deps
    try:
        from opentelemetry import trace
        from opentelemetry.trace import SpanKind, Status, StatusCode
    except Exception:
        return await retry(op, should_retry, scheduler=scheduler)

    if tracer is None:
        from .otel_setup import get_tracer

        tracer = get_tracer()

    _ensure_metrics()
    metrics_active = _metrics_instruments_ready and _metrics_enabled()

    attrs = {k: v for k, v in (base_attrs or {}).items() if v is not None}
    metric_attrs_base = {"pacing.span_name": span_name}

    attempt_counter = {"n": 0}
    start = time.perf_counter()

    def record_operation(outcome: str) -> None:
        if metrics_active and _ops_counter is not None and _duration_histogram is not None:
            metric_attrs = {**metric_attrs_base, "pacing.outcome": outcome}
            _ops_counter.add(1, attributes=metric_attrs)
            _duration_histogram.record(time.perf_counter() - start, attributes=metric_attrs)

    with tracer.start_as_current_span(span_name, kind=SpanKind.INTERNAL) as root:
        for k, v in attrs.items():
            root.set_attribute(k, v)
        root_ctx = trace.set_span_in_context(root)

        async def traced_op():
            attempt_counter["n"] += 1
            if metrics_active and _attempts_counter is not None:
                _attempts_counter.add(1, attributes=metric_attrs_base)

            with tracer.start_as_current_span(
                f"{span_name}.attempt", context=root_ctx, kind=SpanKind.INTERNAL
            ) as s:
                s.set_attribute("pacing.attempt.number", attempt_counter["n"])
                try:
                    res = op()
                    if inspect.isawaitable(res):
                        res = await res
                except BaseException as exc:
                    s.record_exception(exc)
                    s.set_attribute("pacing.attempt.outcome", "error")
                    s.set_status(Status(StatusCode.ERROR))
                    raise
                s.set_attribute("pacing.attempt.outcome", "success")
                return res

        def traced_policy(value, error, attempts):
            answer = should_retry(value, error, attempts)
            root.add_event(
                "pacing.decision",
                {"pacing.attempts": attempts, "pacing.decision": _decision_label(answer)},
            )
            return answer

        try:
            result = await retry(traced_op, traced_policy, scheduler=scheduler)
        except BaseException as exc:
            root.record_exception(exc)
            root.set_attribute("pacing.attempts", attempt_counter["n"])
            root.set_attribute("pacing.outcome", "error")
            root.set_status(Status(StatusCode.ERROR))
            record_operation("error")
            raise

        root.set_attribute("pacing.attempts", attempt_counter["n"])
        root.set_attribute("pacing.outcome", "success")
        record_operation("success")
        return result
