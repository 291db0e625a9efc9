from __future__ import annotations
import math
from numbers import Real
from typing import Any

from .types import Decision, RetryAfter, RetryNow, Stop


def classify_decision(result: Any) -> Decision:
    """Map a retry policy's return value onto Stop / RetryNow / RetryAfter."""
    if isinstance(result, (Stop, RetryNow)):
        return result
    if isinstance(result, RetryAfter):
        return result if result.delay_ms >= 0 else Stop()

    # only the literal True retries without a timer
    if result is True:
        return RetryNow()

    # bool is a Real too; False must stop, not wait 0ms
    if isinstance(result, Real) and not isinstance(result, bool):
        if math.isnan(result) or result < 0:
            return Stop()
        return RetryAfter(result)

    return Stop()
