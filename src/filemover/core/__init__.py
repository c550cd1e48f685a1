"""
Core records, caching and retry primitives.
"""

from filemover.core.cache import SingleFlightCache
from filemover.core.types import (
    FileDetectedEvent,
    LocationType,
    ProcessedFileRecord,
    SourceEntry,
    TransferConfig,
)

__all__ = [
    "SingleFlightCache",
    "FileDetectedEvent",
    "LocationType",
    "ProcessedFileRecord",
    "SourceEntry",
    "TransferConfig",
]
