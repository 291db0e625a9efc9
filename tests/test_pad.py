from __future__ import annotations
import pytest
from pacing_core import pad


async def _value(v):
    return v


async def _fail(err):
    raise err


@pytest.mark.asyncio
async def test_fast_success_is_held_until_padding_elapses(clock):
    fut = pad(lambda: _value("Now!"), 1000, scheduler=clock)

    await clock.advance(999)
    assert not fut.done()

    await clock.advance(1)
    assert fut.done()
    assert await fut == "Now!"


@pytest.mark.asyncio
async def test_fast_failure_is_held_until_padding_elapses(clock):
    err = RuntimeError("too quick")
    fut = pad(lambda: _fail(err), 1000, scheduler=clock)

    await clock.advance(999)
    assert not fut.done()

    await clock.advance(1)
    with pytest.raises(RuntimeError) as ei:
        await fut
    assert ei.value is err


@pytest.mark.asyncio
async def test_slow_success_resolves_when_it_resolves(clock, later):
    fut = pad(lambda: later(2000, "Hi!"), 1000, scheduler=clock)

    await clock.advance(1000)
    assert not fut.done()

    await clock.advance(999)
    assert not fut.done()

    await clock.advance(1)
    assert fut.done()
    assert clock.now() == 2000
    assert await fut == "Hi!"


@pytest.mark.asyncio
async def test_slow_failure_is_not_extended(clock, later):
    err = RuntimeError("slow boom")
    fut = pad(lambda: later(1500, error=err), 1000, scheduler=clock)

    await clock.advance(1499)
    assert not fut.done()

    await clock.advance(1)
    with pytest.raises(RuntimeError) as ei:
        await fut
    assert ei.value is err


@pytest.mark.asyncio
async def test_producer_is_invoked_immediately(clock):
    calls = []

    def op():
        calls.append(1)
        return _value(1)

    pad(op, 1000, scheduler=clock)
    assert calls == [1]


@pytest.mark.asyncio
@pytest.mark.parametrize("pad_ms", [0, -50])
async def test_non_positive_padding_adds_no_wait(clock, pad_ms):
    fut = pad(lambda: _value("x"), pad_ms, scheduler=clock)
    assert clock.pending == 0

    await clock.drain()
    assert fut.done()
    assert await fut == "x"
