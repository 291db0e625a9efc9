from __future__ import annotations
import asyncio
from typing import Callable, Optional

from .types import Scheduler


class LoopScheduler:
    """Scheduler backed by an asyncio event loop (``loop.call_later``)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    def create_future(self) -> asyncio.Future:
        return self.loop.create_future()


def resolve_scheduler(scheduler: Optional[Scheduler]) -> Scheduler:
    return scheduler if scheduler is not None else LoopScheduler()
