"""
FileMover - multi-tenant file detection and transfer worker.

Scans tenant source locations on a schedule, publishes one event per new
file to a per-tenant, per-config channel, and copies each file to its
destination with retry and dead-lettering.
"""

__version__ = "0.1.0"

from filemover.core.types import FileDetectedEvent, LocationType, TransferConfig
from filemover.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ConfigurationMissing,
    FileMoverError,
    InitializationError,
    LedgerConflict,
    LedgerError,
    MessagingError,
    ResolutionError,
    RetryError,
    SchedulingOverlap,
    TransferFailure,
)

__all__ = [
    "__version__",
    "FileDetectedEvent",
    "LocationType",
    "TransferConfig",
    "FileMoverError",
    "ConfigurationError",
    "ConfigurationMissing",
    "InitializationError",
    "ResolutionError",
    "AuthorizationError",
    "LedgerError",
    "LedgerConflict",
    "MessagingError",
    "RetryError",
    "TransferFailure",
    "SchedulingOverlap",
]
