"""
Transfer execution: destinations, consumer and dead-lettering.
"""

from filemover.transfer.consumer import ConsumerStats, TransferConsumer
from filemover.transfer.dead_letter import DeadLetterEntry
from filemover.transfer.destinations import Destination, DfsDestination, SftpDestination, default_destinations

__all__ = [
    "ConsumerStats",
    "DeadLetterEntry",
    "Destination",
    "DfsDestination",
    "SftpDestination",
    "TransferConsumer",
    "default_destinations",
]
