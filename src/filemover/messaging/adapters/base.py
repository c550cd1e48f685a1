"""
Message bus interface.

Every broker adapter (in-process, RabbitMQ) implements this interface so the
publisher, topology registry and consumer never see broker details.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

DEAD_LETTER_SUFFIX = "-deadletter"
DEDUP_HEADER = "x-deduplication-header"


@dataclass
class Message:
    """
    A message on a channel.

    ``value`` is the decoded JSON body; a body that is not JSON arrives as
    ``{"payload": <text>}``.
    """

    value: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    message_id: str | None = None
    channel: str | None = None
    timestamp: datetime | None = None
    redelivered: bool = False

    def encode(self) -> bytes:
        return json.dumps(self.value, default=str).encode("utf-8")


MessageHandler = Callable[[Message], Awaitable[None]]


def dead_letter_name(channel: str) -> str:
    return f"{channel}{DEAD_LETTER_SUFFIX}"


def deserialize_body(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"payload": body.decode("utf-8", errors="replace")}


class MessageBus(ABC):
    """
    Abstract message bus.

    Lifecycle::

        bus = SomeBus(...)
        await bus.connect()
        await bus.declare_channel("transfer-firm-abc-7")
        await bus.subscribe("transfer-firm-abc-7", handler, concurrency=4)
        ...
        await bus.stop()        # stop consuming, let in-flight handlers finish
        await bus.disconnect()

    Handlers that raise have their message requeued for redelivery.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the broker."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the broker connection."""

    @abstractmethod
    async def declare_channel(self, channel: str) -> None:
        """
        Provision ``channel`` and its dead-letter channel.

        Idempotent on the broker side.
        """

    @abstractmethod
    async def publish(self, channel: str, message: Message, *, dedup_key: str | None = None) -> None:
        """
        Publish to ``channel``.

        ``dedup_key`` becomes the message id and the broker dedup header;
        deduplication is best effort.

        Raises:
            MessagingError: If the bus is not connected or rejects the message
        """

    @abstractmethod
    async def subscribe(self, channel: str, handler: MessageHandler, *, concurrency: int = 4) -> None:
        """Start delivering ``channel`` to ``handler`` with at most ``concurrency`` in flight."""

    @abstractmethod
    async def dead_letter(self, channel: str, message: Message) -> None:
        """Route ``message`` to the dead-letter channel of ``channel``."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop consuming; in-flight handlers are allowed to finish."""

    async def __aenter__(self) -> MessageBus:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
        await self.disconnect()
