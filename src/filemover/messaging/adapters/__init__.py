"""
Message bus adapters.
"""

from filemover.messaging.adapters.base import (
    DEAD_LETTER_SUFFIX,
    DEDUP_HEADER,
    Message,
    MessageBus,
    MessageHandler,
    dead_letter_name,
)
from filemover.messaging.adapters.memory import InMemoryBus
from filemover.messaging.adapters.rabbitmq import RabbitMQBus

__all__ = [
    "DEAD_LETTER_SUFFIX",
    "DEDUP_HEADER",
    "InMemoryBus",
    "Message",
    "MessageBus",
    "MessageHandler",
    "RabbitMQBus",
    "dead_letter_name",
]
