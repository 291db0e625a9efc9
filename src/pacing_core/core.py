from __future__ import annotations
import asyncio
import inspect
import logging
from typing import Any, Optional

from .classify import classify_decision
from .scheduler import resolve_scheduler
from .types import OperationProducer, RetryAfter, RetryNow, Scheduler, ShouldRetry

logger = logging.getLogger(__name__)


def _invoke(op: OperationProducer, scheduler: Scheduler) -> asyncio.Future:
    """Call the producer once and return a future for its outcome."""
    try:
        res = op()
    except Exception as exc:
        fut = scheduler.create_future()
        fut.set_exception(exc)
        return fut
    if inspect.isawaitable(res):
        return asyncio.ensure_future(res)
    fut = scheduler.create_future()
    fut.set_result(res)
    return fut


def _adopt(target: asyncio.Future, source: asyncio.Future) -> None:
    """Settle `target` with the outcome of the settled `source`, unchanged."""
    if source.cancelled():
        if not target.done():
            target.cancel()
        return
    exc = source.exception()
    if target.done():
        return
    if exc is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


def wait(duration_ms: float, *, scheduler: Optional[Scheduler] = None) -> asyncio.Future:
    """Future that resolves with None once `duration_ms` has elapsed."""
    scheduler = resolve_scheduler(scheduler)
    fut = scheduler.create_future()

    def _fire() -> None:
        if not fut.done():
            fut.set_result(None)

    scheduler.schedule(max(0, duration_ms), _fire)
    return fut


def delay(
    op: OperationProducer,
    delay_ms: float,
    *,
    scheduler: Optional[Scheduler] = None,
) -> asyncio.Future:
    """
    Invoke `op` only after `delay_ms` has elapsed and adopt its outcome.

    Invocation always happens from a timer callback, so a delay of 0 still
    runs `op` on a later turn of the scheduler.
    """
    scheduler = resolve_scheduler(scheduler)
    delayed = scheduler.create_future()

    def _fire() -> None:
        if delayed.done():
            # cancelled by the caller while waiting
            return
        _invoke(op, scheduler).add_done_callback(lambda f: _adopt(delayed, f))

    scheduler.schedule(max(0, delay_ms), _fire)
    return delayed


def pad(
    op: OperationProducer,
    pad_ms: float,
    *,
    scheduler: Optional[Scheduler] = None,
) -> asyncio.Future:
    """
    Make the outcome of `op` take at least `pad_ms` to be delivered.

    The operation and the padding timer start together. An outcome that
    arrives early is held until the timer fires; one that arrives late is
    forwarded as soon as it is available. Values and errors pass through
    untouched.
    """
    scheduler = resolve_scheduler(scheduler)
    padded = scheduler.create_future()
    source = _invoke(op, scheduler)

    if pad_ms <= 0:
        source.add_done_callback(lambda f: _adopt(padded, f))
        return padded

    padding = {"elapsed": False}

    def _on_padding_elapsed() -> None:
        padding["elapsed"] = True
        if source.done():
            _adopt(padded, source)

    def _on_outcome(fut: asyncio.Future) -> None:
        if padding["elapsed"]:
            _adopt(padded, fut)
        else:
            logger.debug("pad: outcome ready early, holding until %sms", pad_ms)

    scheduler.schedule(pad_ms, _on_padding_elapsed)
    source.add_done_callback(_on_outcome)
    return padded


def retry(
    op: OperationProducer,
    should_retry: ShouldRetry,
    *,
    scheduler: Optional[Scheduler] = None,
) -> asyncio.Future:
    """
    Invoke `op` until `should_retry` decides to stop.

    After every outcome the policy is called as
    ``should_retry(value, error, attempts)`` where exactly one of `value` /
    `error` is meaningful (the other is None) and `attempts` counts the
    invocations made so far. The policy answers:

      - ``True``: retry immediately, no timer involved;
      - a number ``>= 0``: retry after that many milliseconds (0 included);
      - anything else (``False``, a negative number, ...): stop and settle
        with the current outcome.

    ``Stop()``, ``RetryNow()`` and ``RetryAfter(ms)`` may be returned instead
    of the bare values. If the policy raises, the returned future fails with
    that exception and the current outcome is discarded.
    """
    scheduler = resolve_scheduler(scheduler)
    result = scheduler.create_future()
    attempts = 0

    def _attempt() -> None:
        nonlocal attempts
        if result.done():
            return
        attempts += 1
        logger.debug("retry: attempt %d", attempts)
        _invoke(op, scheduler).add_done_callback(_decide)

    def _decide(fut: asyncio.Future) -> None:
        if result.done():
            # still mark a failed attempt's error as retrieved
            if not fut.cancelled():
                fut.exception()
            return
        if fut.cancelled():
            result.cancel()
            return

        error = fut.exception()
        value: Any = None if error is not None else fut.result()
        try:
            decision = classify_decision(should_retry(value, error, attempts))
        except Exception as exc:
            logger.debug("retry: policy raised after attempt %d: %r", attempts, exc)
            result.set_exception(exc)
            return

        if isinstance(decision, RetryNow):
            logger.debug("retry: retrying now after attempt %d", attempts)
            _attempt()
        elif isinstance(decision, RetryAfter):
            logger.debug(
                "retry: retrying in %sms after attempt %d", decision.delay_ms, attempts
            )
            scheduler.schedule(decision.delay_ms, _attempt)
        else:
            logger.debug("retry: done after %d attempt(s)", attempts)
            _adopt(result, fut)

    _attempt()
    return result
