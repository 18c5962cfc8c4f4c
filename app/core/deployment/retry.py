"""
Retry policy.

One reusable ``with_retry`` loop: attempts run strictly one after another,
a predicate separates retryable from terminal failures, and the delay before
attempt ``n + 1`` is ``base_delay * exponential_base ** n``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Coroutine, Generic, List, Optional, TypeVar

from .errors import TerminalDeploymentError

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]
RetryPredicate = Callable[[BaseException], bool]


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    exponential_base: float = 2.0
    max_delay_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def get_delay(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        delay = self.base_delay_seconds * (self.exponential_base ** attempt)
        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)
        return max(delay, 0.0)


def default_is_retryable(error: BaseException) -> bool:
    return not isinstance(error, TerminalDeploymentError)


@dataclass
class AttemptRecord:
    number: int
    started_at: datetime
    error: Optional[BaseException] = None
    retryable: bool = False


@dataclass
class RetryOutcome(Generic[T]):
    """Result of a retried operation."""

    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None


async def with_retry(
    operation: Callable[[int], Coroutine[Any, Any, T]],
    policy: RetryPolicy,
    *,
    is_retryable: RetryPredicate = default_is_retryable,
    sleep: SleepFn = asyncio.sleep,
    logger: Optional[logging.Logger] = None,
    operation_name: str = "operation",
) -> RetryOutcome[T]:
    """Run ``operation(attempt_number)`` until it succeeds or the policy gives up.

    Exceptions never escape (other than cancellation); the last one is
    returned on the outcome together with every attempt made.
    """
    log = logger or logging.getLogger(__name__)
    outcome: RetryOutcome[T] = RetryOutcome()

    for number in range(1, policy.max_attempts + 1):
        record = AttemptRecord(number=number, started_at=datetime.now(timezone.utc))
        outcome.attempts.append(record)
        try:
            outcome.value = await operation(number)
            outcome.error = None
            return outcome
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            record.error = exc
            record.retryable = is_retryable(exc)
            outcome.error = exc

            if not record.retryable:
                log.error("%s attempt %d failed with terminal error: %s", operation_name, number, exc)
                return outcome

            if number < policy.max_attempts:
                delay = policy.get_delay(number)
                log.warning(
                    "%s attempt %d/%d failed: %s. Retrying in %.1fs",
                    operation_name,
                    number,
                    policy.max_attempts,
                    exc,
                    delay,
                )
                await sleep(delay)
            else:
                log.error("%s failed after %d attempts: %s", operation_name, number, exc)

    return outcome


__all__ = [
    "RetryPolicy",
    "RetryOutcome",
    "AttemptRecord",
    "with_retry",
    "default_is_retryable",
]
