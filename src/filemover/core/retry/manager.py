"""
Retry manager for executing async operations with backoff.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from filemover.core.retry.policy import TRANSFER_RETRY_POLICY, RetryPolicy, RetryState
from filemover.utils.logging import get_logger

logger = get_logger("filemover.retry.manager")

T = TypeVar("T")


class RetryManager:
    """
    Wraps an async callable with retry logic based on a RetryPolicy.

    Examples:
        >>> manager = RetryManager()
        >>> state = RetryState(operation="copy report.csv")
        >>> await manager.execute(copy_file, event, policy=TRANSFER_RETRY_POLICY, state=state)
    """

    def __init__(self, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self._sleep = sleep

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args,
        policy: RetryPolicy | None = None,
        operation_name: str | None = None,
        state: RetryState | None = None,
        **kwargs,
    ) -> T:
        """
        Execute async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments to pass to func
            policy: Retry policy (defaults to TRANSFER_RETRY_POLICY)
            operation_name: Name used in log lines
            state: Optional RetryState to record history into
            **kwargs: Keyword arguments to pass to func

        Returns:
            Result of successful execution

        Raises:
            Exception: Final exception after all attempts are used or a
                non-retryable failure occurs
        """
        policy = policy or TRANSFER_RETRY_POLICY
        if state is None:
            state = RetryState(operation=operation_name or getattr(func, "__name__", "operation"))

        for attempt in range(policy.max_attempts):
            state.attempt = attempt

            try:
                logger.debug(f"Executing {state.operation} (attempt {attempt + 1}/{policy.max_attempts})")
                result = await func(*args, **kwargs)

                state.record_attempt()
                state.mark_success()
                if attempt > 0:
                    logger.info(f"{state.operation} succeeded after {attempt + 1} attempts")
                return result

            except Exception as e:
                state.record_attempt(exception=e)

                if not policy.should_retry(e, attempt):
                    state.mark_failure(e)
                    logger.error(f"{state.operation} failed after {attempt + 1} attempts: {e}")
                    raise

                delay = policy.get_delay(attempt)
                state.record_delay(delay)
                logger.warning(f"{state.operation} attempt {attempt + 1} failed: {e}. Retrying in {delay:.2f}s...")
                await self._sleep(delay)

        # max_attempts >= 1 guarantees a return or raise above
        raise RuntimeError(f"Retry logic error for {state.operation}")
