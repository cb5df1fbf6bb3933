"""Retry-with-backoff combinator for optimistic-concurrency writes.

Status writes in this context are conditional: they only apply when the stored
row still holds the state the caller read. A write that finds the row changed
raises ``StaleWriteError``; ``retry_on_conflict`` re-runs the whole
read-decide-write operation with exponential backoff until it sticks or the
allowed attempts run out.
"""

import time
from collections.abc import Callable
from typing import TypeVar

import structlog
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class StaleWriteError(Exception):
    """A conditional write matched no row: someone else changed it first."""

    def __init__(self, message: str = "Row changed since it was read", **context):
        super().__init__(message)
        self.context = context


class ConcurrencyConflict(Exception):
    """Retries exhausted while racing another writer for the same row."""

    def __init__(self, description: str, attempts: int, detail: str | None = None):
        super().__init__(
            detail or f"Could not apply {description} after {attempts} attempts; the record kept changing"
        )
        self.description = description
        self.attempts = attempts
        self.detail = str(self)


def conflict_backoff(base_delay: float, max_jitter: float):
    """Wait ``2^attempt * base_delay`` plus up to ``max_jitter`` seconds."""
    return wait_exponential(multiplier=2 * base_delay) + wait_random(0, max_jitter)


def _log_retry(description: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            "Concurrent update conflict, retrying",
            description=description,
            attempt=retry_state.attempt_number,
            delay_seconds=round(retry_state.next_action.sleep, 3),
            **getattr(exc, "context", {}),
        )

    return before_sleep


def retry_on_conflict(
    operation: Callable[[], T],
    *,
    max_attempts: int = 5,
    base_delay: float = 0.1,
    max_jitter: float = 0.1,
    description: str = "update",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` until it completes without a ``StaleWriteError``.

    ``operation`` must re-read whatever it decides on; it is invoked afresh on
    every attempt. Any other exception propagates immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = Retrying(
        sleep=sleep,
        stop=stop_after_attempt(max_attempts),
        wait=conflict_backoff(base_delay, max_jitter),
        retry=retry_if_exception_type(StaleWriteError),
        before_sleep=_log_retry(description),
    )

    try:
        return retrying(operation)
    except RetryError as exc:
        last = exc.last_attempt.exception()
        attempts = exc.last_attempt.attempt_number
        logger.error(
            "Concurrent update retries exhausted",
            description=description,
            attempts=attempts,
            **getattr(last, "context", {}),
        )
        raise ConcurrencyConflict(description, attempts) from last
