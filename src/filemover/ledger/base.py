"""
Processed-file ledger interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from filemover.core.types import ProcessedFileRecord


class ProcessedFileLedger(ABC):
    """
    Append-only idempotency store, unique on (config_id, fingerprint).

    Every call carries the tenant id so implementations can keep tenants
    physically or logically apart.
    """

    @abstractmethod
    async def is_processed(self, tenant_id: str, config_id: int, fingerprint: str) -> bool:
        """
        Raises:
            LedgerError: If the ledger cannot be read
        """

    @abstractmethod
    async def mark_processed(self, tenant_id: str, record: ProcessedFileRecord) -> None:
        """
        Raises:
            LedgerConflict: If (config_id, fingerprint) is already recorded
            LedgerError: If the ledger cannot be written
        """

    async def close(self) -> None:
        """Release any held resources."""
