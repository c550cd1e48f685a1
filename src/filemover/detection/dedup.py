"""
Ledger-backed deduplication.
"""

from __future__ import annotations

from datetime import UTC, datetime

from filemover.core.types import ProcessedFileRecord, SourceEntry
from filemover.detection.fingerprint import fingerprint_entry
from filemover.exceptions import LedgerConflict, LedgerError
from filemover.ledger.base import ProcessedFileLedger
from filemover.utils.logging import get_logger

logger = get_logger("filemover.detection.dedup")


class DedupEngine:
    """
    Consults and updates the ledger on behalf of the scan loop.

    Lookup failures count as "not processed": the file may be published
    again, which consumers tolerate, rather than silently skipped.
    """

    def __init__(self, ledger: ProcessedFileLedger):
        self.ledger = ledger

    async def is_processed(self, tenant_id: str, config_id: int, fingerprint: str) -> bool:
        try:
            return await self.ledger.is_processed(tenant_id, config_id, fingerprint)
        except LedgerError as e:
            logger.warning(f"Ledger lookup failed for tenant '{tenant_id}' config {config_id}, assuming unprocessed: {e}")
            return False

    async def mark_processed(self, tenant_id: str, config_id: int, entry: SourceEntry, fingerprint: str | None = None) -> bool:
        """
        Append a ledger record for ``entry``.

        Returns:
            True if recorded now, False if it was already recorded

        Raises:
            LedgerError: If the ledger cannot be written
        """
        record = ProcessedFileRecord(
            config_id=config_id,
            fingerprint=fingerprint or fingerprint_entry(entry),
            file_name=entry.name,
            mtime=entry.mtime,
            size=entry.size,
            processed_at=datetime.now(UTC),
        )
        try:
            await self.ledger.mark_processed(tenant_id, record)
        except LedgerConflict:
            logger.debug(f"{entry.name} already recorded for config {config_id}")
            return False
        return True
