from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, Union

T = TypeVar("T")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Timer + future factory the combinators are built on."""

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def create_future(self) -> asyncio.Future: ...


# Starts an operation; returns an awaitable (or a plain value) for its outcome
OperationProducer = Callable[[], Union[Awaitable[T], T]]

# (value, error, attempts) -> bool | number | Decision
ShouldRetry = Callable[[Optional[Any], Optional[BaseException], int], Any]


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class RetryNow:
    pass


@dataclass(frozen=True)
class RetryAfter:
    delay_ms: float


Decision = Union[Stop, RetryNow, RetryAfter]
