"""
Dead-letter records for transfers that could not be completed.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from filemover.core.retry.policy import RetryState


@dataclass
class DeadLetterEntry:
    """
    Why a transfer event was dead-lettered.

    Published next to the untouched original payload so the event can be
    replayed by hand.
    """

    channel: str
    reason: str
    exception_type: str
    exception_message: str

    # Retry metadata
    total_attempts: int = 0
    retry_history: list[dict[str, Any]] = field(default_factory=list)
    first_attempt_time: float | None = None
    last_attempt_time: float | None = None

    # Event identity, when the payload could be decoded
    tenant_id: str | None = None
    config_id: int | None = None
    file_name: str | None = None
    dedup_key: str | None = None

    dead_lettered_at: float = field(default_factory=time.time)

    @classmethod
    def from_failure(
        cls,
        channel: str,
        reason: str,
        exc: BaseException,
        state: RetryState | None = None,
        **identity: Any,
    ) -> DeadLetterEntry:
        return cls(
            channel=channel,
            reason=reason,
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            total_attempts=state.total_attempts if state else 0,
            retry_history=list(state.exceptions) if state else [],
            first_attempt_time=state.first_attempt_time if state else None,
            last_attempt_time=state.last_attempt_time if state else None,
            **identity,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeadLetterEntry:
        return cls(**data)
