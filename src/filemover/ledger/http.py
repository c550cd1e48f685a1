"""
Ledger backed by the management API.

    GET  /api/filetransfer/files/processed?configId=..&fingerprint=..  -> JSON bool
    POST /api/filetransfer/files/processed                              -> 2xx, 409 on duplicate

The tenant travels in the ``X-Tenant-ID`` header.
"""

from __future__ import annotations

import aiohttp

from filemover.core.types import ProcessedFileRecord, utc
from filemover.exceptions import LedgerConflict, LedgerError
from filemover.ledger.base import ProcessedFileLedger
from filemover.utils.logging import get_logger

logger = get_logger("filemover.ledger.http")

PROCESSED_PATH = "/api/filetransfer/files/processed"


class HttpLedger(ProcessedFileLedger):
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    async def is_processed(self, tenant_id: str, config_id: int, fingerprint: str) -> bool:
        params = {"configId": str(config_id), "fingerprint": fingerprint}
        try:
            async with self._get_session().get(
                f"{self.base_url}{PROCESSED_PATH}",
                params=params,
                headers={"X-Tenant-ID": tenant_id},
            ) as resp:
                resp.raise_for_status()
                return bool(await resp.json())
        except (aiohttp.ClientError, TimeoutError) as e:
            raise LedgerError(
                f"Could not check processed state for config {config_id}: {e}",
                details={"tenant_id": tenant_id, "config_id": config_id},
            ) from e

    async def mark_processed(self, tenant_id: str, record: ProcessedFileRecord) -> None:
        body = {
            "configId": record.config_id,
            "fileName": record.file_name,
            "fingerprint": record.fingerprint,
            "fileModifiedDate": utc(record.mtime).isoformat(),
            "fileSize": record.size,
            "processedDate": utc(record.processed_at).isoformat(),
        }
        try:
            async with self._get_session().post(
                f"{self.base_url}{PROCESSED_PATH}",
                json=body,
                headers={"X-Tenant-ID": tenant_id},
            ) as resp:
                if resp.status == 409:
                    raise LedgerConflict(record.config_id, record.fingerprint)
                resp.raise_for_status()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise LedgerError(
                f"Could not record {record.file_name} for config {record.config_id}: {e}",
                details={"tenant_id": tenant_id, "config_id": record.config_id},
            ) from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
