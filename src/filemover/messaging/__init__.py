"""
Messaging: bus adapters, channel topology and the event publisher.
"""

from filemover.messaging.adapters import InMemoryBus, Message, MessageBus, RabbitMQBus
from filemover.messaging.publisher import EventPublisher
from filemover.messaging.topology import ChannelBinding, TopologyRegistry, channel_name

__all__ = [
    "ChannelBinding",
    "EventPublisher",
    "InMemoryBus",
    "Message",
    "MessageBus",
    "RabbitMQBus",
    "TopologyRegistry",
    "channel_name",
]
