from .core import wait, delay, pad, retry
from .classify import classify_decision
from .policies import MaxRetriesError, max_retries, retry_on_result
from .scheduler import LoopScheduler
from .types import RetryAfter, RetryNow, Stop

__all__ = [
    "wait",
    "delay",
    "pad",
    "retry",
    "classify_decision",
    "MaxRetriesError",
    "max_retries",
    "retry_on_result",
    "LoopScheduler",
    "RetryAfter",
    "RetryNow",
    "Stop",
]

# Optional: expose OTEL-integrated helper if available.
try:
    from .otel_runtime import retry_traced_optional  # noqa: F401

    __all__.append("retry_traced_optional")
except Exception:  # pragma: no cover
    # Core combinators stay usable when the OTEL layer can't be imported.
    pass

__version__ = "1.0.0"
