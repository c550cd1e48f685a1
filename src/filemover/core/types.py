"""
Core records shared by detection, messaging and transfer.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

# In-flight copies are written as <name>.filemover-part and renamed into place
PARTIAL_SUFFIX = ".filemover-part"


class LocationType(StrEnum):
    """Kinds of source/destination locations."""

    DFS = "DFS"
    SFTP = "SFTP"


def utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    # Accept a trailing Z from non-Python producers
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return utc(datetime.fromisoformat(text))


_FALSE_WORDS = frozenset({"false", "0", "no", "off", ""})


def as_bool(value: Any, default: bool = True) -> bool:
    """Interpret a flag from YAML/JSON; the strings "false", "no", "off" and "0" are False."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_WORDS
    return bool(value)


@dataclass(frozen=True)
class TransferConfig:
    """
    A tenant-owned transfer definition.

    Mutated externally (admin API / database); the core only reads it.
    """

    config_id: int
    tenant_id: str
    source_type: str
    source_location: str
    destination_type: str
    destination_location: str
    schedule_spec: str | None = None
    enabled: bool = True
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, tenant_id: str | None = None) -> TransferConfig:
        """Build from a config/API mapping; accepts snake_case or the gateway's camelCase keys."""

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls(
            config_id=int(pick("config_id", "configId", "id")),
            tenant_id=str(pick("tenant_id", "tenantId", default=tenant_id) or ""),
            source_type=str(pick("source_type", "sourceType", default=LocationType.DFS)).upper(),
            source_location=str(pick("source_location", "sourceLocation", default="")),
            destination_type=str(pick("destination_type", "destinationType", default=LocationType.DFS)).upper(),
            destination_location=str(pick("destination_location", "destinationLocation", default="")),
            schedule_spec=pick("schedule_spec", "scheduleSpec", "cronSchedule", "schedule"),
            enabled=as_bool(pick("enabled", "isEnabled")),
            name=str(pick("name", default="")),
        )


@dataclass(frozen=True)
class SourceEntry:
    """A file found at a source location."""

    path: str
    name: str
    size: int
    mtime: datetime


@dataclass(frozen=True)
class ProcessedFileRecord:
    """Ledger row: one (config, fingerprint) pair that has been published."""

    config_id: int
    fingerprint: str
    file_name: str
    mtime: datetime
    size: int
    processed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "config_id": self.config_id,
            "fingerprint": self.fingerprint,
            "file_name": self.file_name,
            "mtime": utc(self.mtime).isoformat(),
            "size": self.size,
            "processed_at": utc(self.processed_at).isoformat(),
        }


@dataclass(frozen=True)
class FileDetectedEvent:
    """
    Transient "file detected" event carried on a tenant+config channel.

    Delivery is at-least-once; ``dedup_key`` (the file fingerprint) lets the
    broker and consumers recognise redeliveries.
    """

    tenant_id: str
    config_id: int
    file_path: str
    file_name: str
    size_bytes: int
    mtime: datetime
    source_type: str
    destination_type: str
    destination_location: str
    dedup_key: str
    detected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mtime"] = utc(self.mtime).isoformat()
        data["detected_at"] = utc(self.detected_at).isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileDetectedEvent:
        return cls(
            tenant_id=str(data["tenant_id"]),
            config_id=int(data["config_id"]),
            file_path=str(data["file_path"]),
            file_name=str(data["file_name"]),
            size_bytes=int(data["size_bytes"]),
            mtime=parse_datetime(data["mtime"]),
            source_type=str(data["source_type"]),
            destination_type=str(data["destination_type"]),
            destination_location=str(data["destination_location"]),
            dedup_key=str(data["dedup_key"]),
            detected_at=parse_datetime(data.get("detected_at") or datetime.now(UTC)),
        )
