"""
Retry framework for transient transfer failures.
"""

from filemover.core.retry.manager import RetryManager
from filemover.core.retry.policy import (
    NO_RETRY_POLICY,
    TRANSFER_RETRY_POLICY,
    RetryPolicy,
    RetryState,
)

__all__ = [
    "RetryPolicy",
    "RetryState",
    "TRANSFER_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "RetryManager",
]
