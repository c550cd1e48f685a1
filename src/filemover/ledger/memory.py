"""
In-process ledger.
"""

from __future__ import annotations

from filemover.core.types import ProcessedFileRecord
from filemover.exceptions import LedgerConflict
from filemover.ledger.base import ProcessedFileLedger


class InMemoryLedger(ProcessedFileLedger):
    """Dict-backed ledger for tests and single-process runs; lost on restart."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, int, str], ProcessedFileRecord] = {}

    async def is_processed(self, tenant_id: str, config_id: int, fingerprint: str) -> bool:
        return (tenant_id, config_id, fingerprint) in self._records

    async def mark_processed(self, tenant_id: str, record: ProcessedFileRecord) -> None:
        key = (tenant_id, record.config_id, record.fingerprint)
        if key in self._records:
            raise LedgerConflict(record.config_id, record.fingerprint)
        self._records[key] = record

    def records(self, tenant_id: str | None = None) -> list[ProcessedFileRecord]:
        return [r for (tid, _, _), r in self._records.items() if tenant_id is None or tid == tenant_id]

    def __len__(self) -> int:
        return len(self._records)
