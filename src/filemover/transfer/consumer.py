"""
Transfer consumer: executes file-detected events with retry and dead-lettering.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from filemover.core.retry import TRANSFER_RETRY_POLICY, RetryManager, RetryPolicy, RetryState
from filemover.core.types import FileDetectedEvent
from filemover.exceptions import TransferFailure
from filemover.messaging.adapters.base import Message, MessageBus
from filemover.messaging.topology import ChannelBinding
from filemover.transfer.dead_letter import DeadLetterEntry
from filemover.transfer.destinations import Destination, default_destinations
from filemover.utils.logging import get_logger

logger = get_logger("filemover.transfer.consumer")


@dataclass
class ConsumerStats:
    received: int = 0
    succeeded: int = 0
    dead_lettered: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class TransferConsumer:
    """
    Subscribes to transfer channels and performs the destination write.

    Each channel is consumed with bounded concurrency. A failing write is
    retried per ``policy`` (3 attempts, 5 seconds apart by default); when
    attempts run out, or the failure is permanent, the original event is
    routed to the channel's dead-letter channel. An event is never attempted
    more than ``policy.max_attempts`` times per delivery.

    Args:
        bus: Message bus to subscribe on
        destinations: Writers by destination type (default: DFS and SFTP)
        policy: Retry policy for destination writes
        concurrency: In-flight handlers per channel
        retry_manager: Override for tests (e.g. a non-sleeping manager)
    """

    def __init__(
        self,
        bus: MessageBus,
        destinations: Mapping[str, Destination] | None = None,
        policy: RetryPolicy = TRANSFER_RETRY_POLICY,
        concurrency: int = 4,
        retry_manager: RetryManager | None = None,
    ):
        self.bus = bus
        self.destinations = {k.upper(): v for k, v in (destinations or default_destinations()).items()}
        self.policy = policy
        self.concurrency = concurrency
        self.retry_manager = retry_manager or RetryManager()
        self.stats = ConsumerStats()
        self._attached: set[str] = set()

    @property
    def channels(self) -> list[str]:
        return sorted(self._attached)

    async def attach(self, binding: ChannelBinding) -> None:
        """Start consuming a channel; attaching twice is a no-op."""
        channel = binding.channel_name
        if channel in self._attached:
            return
        self._attached.add(channel)

        async def handler(message: Message) -> None:
            await self.handle(channel, message)

        try:
            await self.bus.subscribe(channel, handler, concurrency=self.concurrency)
        except Exception:
            self._attached.discard(channel)
            raise
        logger.info(f"Consuming {channel} (concurrency={self.concurrency})")

    async def handle(self, channel: str, message: Message) -> None:
        """
        Process one delivery.

        Only a failure to dead-letter propagates, so the bus redelivers the
        message rather than dropping it.
        """
        self.stats.received += 1

        try:
            event = FileDetectedEvent.from_dict(message.value)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Undecodable event on {channel}: {e}")
            entry = DeadLetterEntry.from_failure(channel, "invalid payload", e)
            await self._dead_letter(channel, message, entry)
            return

        identity: dict[str, Any] = {
            "tenant_id": event.tenant_id,
            "config_id": event.config_id,
            "file_name": event.file_name,
            "dedup_key": event.dedup_key,
        }

        destination = self.destinations.get(event.destination_type.upper())
        if destination is None:
            exc = TransferFailure(f"Unsupported destination type '{event.destination_type}'", retryable=False)
            logger.error(f"{exc} for {event.file_name} on {channel}")
            entry = DeadLetterEntry.from_failure(channel, "unsupported destination", exc, **identity)
            await self._dead_letter(channel, message, entry)
            return

        state = RetryState(operation=f"transfer {event.file_name} on {channel}")
        try:
            await self.retry_manager.execute(destination.write, event, policy=self.policy, state=state)
        except Exception as e:
            reason = "retries exhausted" if getattr(e, "retryable", True) else "permanent failure"
            entry = DeadLetterEntry.from_failure(channel, reason, e, state, **identity)
            await self._dead_letter(channel, message, entry)
            return

        self.stats.succeeded += 1

    async def _dead_letter(self, channel: str, message: Message, entry: DeadLetterEntry) -> None:
        dead = Message(
            value={"event": message.value, "failure": entry.to_dict()},
            headers={
                **message.headers,
                "x-exception-type": entry.exception_type,
                "x-attempts": str(entry.total_attempts),
            },
            message_id=message.message_id,
        )
        await self.bus.dead_letter(channel, dead)
        self.stats.dead_lettered += 1
        logger.warning(
            f"Dead-lettered {entry.file_name or message.message_id} from {channel} "
            f"after {entry.total_attempts} attempt(s): {entry.reason}"
        )

