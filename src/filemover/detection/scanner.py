"""
One detection pass over a transfer config's source location.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from filemover.catalog.base import ConfigStore
from filemover.core.types import FileDetectedEvent, SourceEntry, TransferConfig
from filemover.detection.dedup import DedupEngine
from filemover.detection.fingerprint import fingerprint_entry
from filemover.detection.listing import list_source
from filemover.exceptions import LedgerError, MessagingError
from filemover.messaging.publisher import EventPublisher
from filemover.tenancy.resolver import TenantResolver
from filemover.utils.logging import get_logger

logger = get_logger("filemover.detection.scanner")


class ScanStatus(StrEnum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ScanResult:
    """Summary of one scan, kept per schedule for status reporting."""

    tenant_id: str
    config_id: int
    status: ScanStatus = ScanStatus.COMPLETED
    listed: int = 0
    published: int = 0
    skipped: int = 0
    errors: int = 0
    message: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    def finish(self, status: ScanStatus | None = None, message: str = "") -> ScanResult:
        if status is not None:
            self.status = status
        elif self.errors:
            self.status = ScanStatus.PARTIAL
        if message:
            self.message = message
        self.finished_at = datetime.now(UTC)
        return self

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "config_id": self.config_id,
            "status": str(self.status),
            "listed": self.listed,
            "published": self.published,
            "skipped": self.skipped,
            "errors": self.errors,
            "message": self.message,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class Scanner:
    """
    Lists a source, skips files the ledger already knows and publishes the rest.

    Each file is published before it is recorded in the ledger. A crash (or
    ledger failure) between the two republishes the file on the next scan;
    broker dedup and idempotent destinations absorb the duplicate.
    """

    def __init__(
        self,
        resolver: TenantResolver,
        catalog: ConfigStore,
        dedup: DedupEngine,
        publisher: EventPublisher,
    ):
        self.resolver = resolver
        self.catalog = catalog
        self.dedup = dedup
        self.publisher = publisher

    async def scan(self, tenant_id: str, config_id: int) -> ScanResult:
        """
        Run one scan.

        Raises:
            ResolutionError: If the tenant is unknown
            ConfigurationMissing: If the tenant's ledger cannot be routed
        """
        result = ScanResult(tenant_id=tenant_id, config_id=config_id)

        tenant = await self.resolver.get_tenant(tenant_id)
        config = await self.catalog.get_transfer_config(tenant.tenant_id, config_id)
        if config is None:
            logger.info(f"Config {config_id} for tenant '{tenant_id}' no longer exists, skipping")
            return result.finish(ScanStatus.SKIPPED, "config not found")
        if not config.enabled:
            logger.info(f"Config {config_id} for tenant '{tenant_id}' is disabled, skipping")
            return result.finish(ScanStatus.SKIPPED, "config disabled")

        entries = await list_source(config.source_type, config.source_location)
        result.listed = len(entries)
        logger.debug(f"Found {len(entries)} file(s) in {config.source_location}")

        for entry in entries:
            await self._process_entry(config, entry, result)

        result.finish()
        if result.published or result.errors:
            logger.info(
                f"Scan tenant='{tenant_id}' config={config_id}: "
                f"{result.published} published, {result.skipped} skipped, {result.errors} error(s)"
            )
        return result

    async def _process_entry(self, config: TransferConfig, entry: SourceEntry, result: ScanResult) -> None:
        fp = fingerprint_entry(entry)
        if await self.dedup.is_processed(config.tenant_id, config.config_id, fp):
            result.skipped += 1
            return

        event = FileDetectedEvent(
            tenant_id=config.tenant_id,
            config_id=config.config_id,
            file_path=entry.path,
            file_name=entry.name,
            size_bytes=entry.size,
            mtime=entry.mtime,
            source_type=config.source_type,
            destination_type=config.destination_type,
            destination_location=config.destination_location,
            dedup_key=fp,
        )
        try:
            await self.publisher.publish(event)
        except MessagingError as e:
            # Not recorded, so the next scan tries again
            logger.error(f"Failed to publish {entry.name} for config {config.config_id}: {e}")
            result.errors += 1
            return
        result.published += 1

        try:
            await self.dedup.mark_processed(config.tenant_id, config.config_id, entry, fp)
        except LedgerError as e:
            logger.warning(f"Published {entry.name} but could not record it; it may be published again: {e}")
