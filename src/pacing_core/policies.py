from __future__ import annotations
from typing import Any, Callable, Optional

from .classify import classify_decision
from .types import ShouldRetry, Stop


class MaxRetriesError(RuntimeError):
    """Raised by a `max_retries` policy once its retry budget is used up."""

    def __init__(self, num_retries: int, attempts: int):
        super().__init__("Maximum number of retries reached")
        self.num_retries = num_retries
        self.attempts = attempts


def retry_on_result(predicate: Callable[[Any], Any]) -> ShouldRetry:
    """
    Retry successful results while `predicate(value)` is truthy.

    Errors are never retried: the first failure settles the retry.
    """

    def policy(value: Optional[Any], error: Optional[BaseException], attempts: int) -> bool:
        if error is not None:
            return False
        return True if predicate(value) else False

    return policy


def max_retries(num_retries: int, should_retry: ShouldRetry) -> ShouldRetry:
    """
    Cap `should_retry` at `num_retries` retries (attempts after the first).

    When the wrapped policy still wants another attempt after the cap, the
    returned policy raises MaxRetriesError, which becomes the retry's failure.
    A wrapped policy that stops is honored as is.
    """

    def policy(value: Optional[Any], error: Optional[BaseException], attempts: int) -> Any:
        answer = should_retry(value, error, attempts)
        if isinstance(classify_decision(answer), Stop):
            return answer
        if attempts > num_retries:
            raise MaxRetriesError(num_retries, attempts)
        return answer

    return policy
