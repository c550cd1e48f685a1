"""
Retry policy configuration for transfers.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Type


@dataclass
class RetryPolicy:
    """
    Configuration for retry behavior when a transfer fails.

    ``max_attempts`` counts every execution, the first one included, so a
    policy with ``max_attempts=3`` never runs a 4th time. With
    ``exponential_base=1.0`` and no jitter the backoff is fixed.

    Examples:
        >>> # Fixed backoff: 3 attempts, 5s apart
        >>> policy = RetryPolicy(max_attempts=3, initial_delay=5.0, max_delay=5.0,
        ...                      exponential_base=1.0, jitter=False)

        >>> # Exponential backoff, only for I/O errors
        >>> policy = RetryPolicy(
        ...     max_attempts=5,
        ...     initial_delay=1.0,
        ...     max_delay=60.0,
        ...     retryable_exceptions=(OSError,),
        ... )
    """

    # Total executions, first attempt included
    max_attempts: int = 3

    # Delay before the first retry (seconds)
    initial_delay: float = 5.0

    # Upper bound for any single delay (seconds)
    max_delay: float = 5.0

    # delay = initial_delay * base^attempt; 1.0 means fixed backoff
    exponential_base: float = 1.0

    # ±25% random jitter
    jitter: bool = False

    # Only retry these exception types (None = retry all exceptions)
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None

    # Signature: (exception, attempt) -> bool; overrides retryable_exceptions
    retry_condition: Optional[Callable[[Exception, int], bool]] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.exponential_base < 1.0:
            raise ValueError("exponential_base must be >= 1.0")

    @classmethod
    def from_config(cls, retry_config: dict[str, Any] | None) -> "RetryPolicy":
        """Build from a ``consumer.retry`` mapping ({max_attempts, delay_s}) ."""
        retry_config = retry_config or {}
        delay = float(retry_config.get("delay_s", 5.0))
        return cls(
            max_attempts=int(retry_config.get("max_attempts", 3)),
            initial_delay=delay,
            max_delay=float(retry_config.get("max_delay_s", delay)),
            exponential_base=float(retry_config.get("exponential_base", 1.0)),
            jitter=bool(retry_config.get("jitter", False)),
        )

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """
        Determine if we should retry after this exception.

        Args:
            exception: The exception that occurred
            attempt: Attempt that just failed (0-indexed)
        """
        if attempt + 1 >= self.max_attempts:
            return False

        # Failures flagged as permanent are never retried
        if getattr(exception, "retryable", True) is False:
            return False

        if self.retry_condition is not None:
            return self.retry_condition(exception, attempt)

        if self.retryable_exceptions is not None:
            return isinstance(exception, self.retryable_exceptions)

        return True

    def get_delay(self, attempt: int) -> float:
        """
        Delay before the retry that follows ``attempt`` (0-indexed).

        delay = min(initial_delay * base^attempt [* jitter], max_delay)
        """
        delay = self.initial_delay * (self.exponential_base**attempt)
        if self.jitter:
            delay *= random.uniform(0.75, 1.25)
        return min(delay, self.max_delay)


@dataclass
class RetryState:
    """Retry history for one operation, kept for logging and dead-letter entries."""

    operation: str
    attempt: int = 0
    total_attempts: int = 0
    exceptions: list = field(default_factory=list)
    delays: list = field(default_factory=list)
    first_attempt_time: float | None = None
    last_attempt_time: float | None = None
    succeeded: bool = False
    final_exception: Optional[Exception] = None

    def record_attempt(self, exception: Optional[Exception] = None):
        now = time.time()
        self.total_attempts += 1
        if self.first_attempt_time is None:
            self.first_attempt_time = now
        self.last_attempt_time = now

        if exception is not None:
            self.exceptions.append(
                {
                    "attempt": self.attempt,
                    "exception_type": type(exception).__name__,
                    "exception_message": str(exception),
                    "timestamp": now,
                }
            )

    def record_delay(self, delay: float):
        self.delays.append(delay)

    def mark_success(self):
        self.succeeded = True

    def mark_failure(self, exception: Exception):
        self.succeeded = False
        self.final_exception = exception


# Fixed backoff: 3 attempts, 5 seconds apart
TRANSFER_RETRY_POLICY = RetryPolicy(
    max_attempts=3,
    initial_delay=5.0,
    max_delay=5.0,
    exponential_base=1.0,
    jitter=False,
)

NO_RETRY_POLICY = RetryPolicy(max_attempts=1, initial_delay=0.0, max_delay=0.0)
