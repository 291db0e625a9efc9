from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Tuple


class VirtualTimer:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """
    Scheduler whose timers only fire when the clock is advanced.

    Futures still live on the real running loop, so continuations run as
    usual; only the passage of time is simulated. Between timer firings the
    loop is given `drain_iterations` turns to run pending callbacks.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        drain_iterations: int = 20,
    ):
        self._loop = loop
        self._now = 0.0
        self._seq = itertools.count()
        self._timers: List[Tuple[float, int, VirtualTimer]] = []
        self.drain_iterations = drain_iterations

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._timers if not t.cancelled)

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._timers, (timer.when, next(self._seq), timer))
        return timer

    def create_future(self) -> asyncio.Future:
        return self.loop.create_future()

    async def drain(self) -> None:
        for _ in range(self.drain_iterations):
            await asyncio.sleep(0)

    async def advance(self, ms: float) -> None:
        """Move time forward by `ms`, firing due timers in order."""
        target = self._now + ms
        await self.drain()
        while self._timers and self._timers[0][0] <= target:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
            await self.drain()
        self._now = target

    async def run_all(self, limit: int = 10_000) -> None:
        """Advance until no timers are left (at most `limit` firings)."""
        await self.drain()
        for _ in range(limit):
            if not self.pending:
                return
            await self.advance(self._timers[0][0] - self._now)
        raise RuntimeError(f"timers still pending after {limit} firings")
