"""
Retry and deadline helpers for blocking provider calls.

Delays grow linearly with the attempt number (base_delay * attempt),
optionally padded with random jitter. A Deadline bounds the total time
one inbound message may spend in network calls.
"""
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Deadline:
    """Monotonic time budget shared by every call made for one message"""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    @classmethod
    def unlimited(cls) -> "Deadline":
        return cls(float("inf"))

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


@dataclass
class RetryPolicy:
    """Retry configuration for one provider"""
    max_attempts: int = 3
    base_delay: float = 2.0   # seconds, multiplied by the attempt number
    jitter: float = 0.0       # max random seconds added per delay

    def delay_for(self, attempt: int) -> float:
        delay = self.base_delay * attempt
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay


@dataclass
class RetryOutcome:
    """What happened across all attempts of one retried call"""
    tries: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def last_error(self) -> Optional[str]:
        return self.errors[-1] if self.errors else None


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    retry_on: Tuple[Type[BaseException], ...],
    deadline: Optional[Deadline] = None,
    sleep: Callable[[float], None] = time.sleep,
    operation: str = "call",
) -> Tuple[Optional[T], RetryOutcome]:
    """
    Run `func` up to `policy.max_attempts` times.

    Returns (value, outcome) on success and (None, outcome) once attempts are
    exhausted, the deadline expires or an error with `retryable = False` is
    raised. Exceptions outside `retry_on` propagate immediately.
    """
    outcome = RetryOutcome()
    deadline = deadline or Deadline.unlimited()

    for attempt in range(1, policy.max_attempts + 1):
        if deadline.expired:
            outcome.errors.append(f"deadline exceeded before attempt {attempt}")
            logger.warning(f"⏱️ {operation}: deadline exceeded, skipping remaining attempts")
            break

        outcome.tries = attempt
        try:
            return func(), outcome
        except retry_on as e:
            outcome.errors.append(str(e))
            logger.warning(f"{operation} attempt {attempt}/{policy.max_attempts} failed: {e}")

            if not getattr(e, "retryable", True):
                logger.info(f"{operation}: error is not retryable, giving up")
                break

            if attempt < policy.max_attempts:
                delay = min(policy.delay_for(attempt), deadline.remaining())
                if delay > 0:
                    logger.info(f"Retrying {operation} in {delay:.1f}s")
                    sleep(delay)

    return None, outcome
