"""
FileMover exception hierarchy.

All domain-specific exceptions inherit from FileMoverError, so callers can
catch any framework error with a single base class while still handling the
individual failure modes where it matters.

Hierarchy::

    FileMoverError
    ├── ConfigurationError        - config loading, parsing, validation
    │   └── ConfigurationMissing  - no routing/connection info for a tenant
    ├── InitializationError       - worker startup failed
    ├── ResolutionError           - tenant could not be identified
    ├── AuthorizationError        - client code not permitted for tenant
    ├── LedgerError               - processed-file ledger read/write
    │   └── LedgerConflict        - duplicate (config, fingerprint) record
    ├── MessagingError            - bus connection / publish failures
    ├── RetryError                - retry exhaustion
    │   └── TransferFailure       - destination write failed
    └── SchedulingOverlap         - scan already running for a schedule
"""

from __future__ import annotations


class FileMoverError(Exception):
    """Base exception for all FileMover errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(FileMoverError):
    """Raised when configuration loading, parsing, or validation fails."""


class ConfigurationMissing(ConfigurationError):
    """Raised when no override or template can route a tenant to a backing store."""

    def __init__(self, tenant_id: str, message: str | None = None) -> None:
        super().__init__(
            message or f"No connection override or template configured for tenant '{tenant_id}'",
            details={"tenant_id": tenant_id},
        )
        self.tenant_id = tenant_id


class InitializationError(FileMoverError):
    """Raised when the worker cannot be initialized (config, logging, components)."""


# --- Tenancy -----------------------------------------------------------------


class ResolutionError(FileMoverError):
    """Raised when no tenant can be identified from a request or scan context."""


class AuthorizationError(FileMoverError):
    """Raised when a client code is not permitted for the resolved tenant."""

    def __init__(self, tenant_id: str, client_code: str) -> None:
        super().__init__(
            f"Client code '{client_code}' is not authorized for tenant '{tenant_id}'",
            details={"tenant_id": tenant_id, "client_code": client_code},
        )
        self.tenant_id = tenant_id
        self.client_code = client_code


# --- Ledger ------------------------------------------------------------------


class LedgerError(FileMoverError):
    """Raised when the processed-file ledger cannot be read or written."""


class LedgerConflict(LedgerError):
    """Raised when a (config, fingerprint) pair is already recorded."""

    def __init__(self, config_id: int, fingerprint: str) -> None:
        super().__init__(
            f"File {fingerprint} already recorded for config {config_id}",
            details={"config_id": config_id, "fingerprint": fingerprint},
        )
        self.config_id = config_id
        self.fingerprint = fingerprint


# --- Messaging ---------------------------------------------------------------


class MessagingError(FileMoverError):
    """Raised when the message bus is unavailable or rejects an operation."""


# --- Retry / transfer --------------------------------------------------------


class RetryError(FileMoverError):
    """Raised when all retry attempts are exhausted."""


class TransferFailure(RetryError):
    """Raised when a destination write fails.

    ``retryable=False`` marks failures that another attempt cannot fix
    (unsupported destination, undecodable event); those go straight to the
    dead-letter channel.
    """

    def __init__(self, message: str, *, retryable: bool = True, details: dict | None = None) -> None:
        super().__init__(message, details=details)
        self.retryable = retryable


# --- Scheduling --------------------------------------------------------------


class SchedulingOverlap(FileMoverError):
    """Raised when a scan is triggered while the previous one is still running."""

    def __init__(self, tenant_id: str, config_id: int) -> None:
        super().__init__(
            f"Scan for tenant '{tenant_id}' config {config_id} is already running",
            details={"tenant_id": tenant_id, "config_id": config_id},
        )
        self.tenant_id = tenant_id
        self.config_id = config_id
