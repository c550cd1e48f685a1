"""
Publishes file-detected events onto their tenant+config channel.
"""

from __future__ import annotations

from filemover.core.types import FileDetectedEvent
from filemover.messaging.adapters.base import Message, MessageBus
from filemover.messaging.topology import TopologyRegistry
from filemover.utils.logging import get_logger

logger = get_logger("filemover.messaging.publisher")


class EventPublisher:
    def __init__(self, bus: MessageBus, topology: TopologyRegistry):
        self.bus = bus
        self.topology = topology

    async def publish(self, event: FileDetectedEvent) -> str:
        """
        Publish ``event``; the fingerprint travels as the dedup key.

        Returns:
            The channel the event went to

        Raises:
            MessagingError: If provisioning or publishing fails
        """
        channel = await self.topology.get_channel(event.tenant_id, event.config_id)
        message = Message(value=event.to_dict(), headers={"x-tenant-id": event.tenant_id})
        await self.bus.publish(channel, message, dedup_key=event.dedup_key)
        logger.info(f"Published {event.file_name} to {channel}")
        return channel
