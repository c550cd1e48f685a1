"""
Metadata fingerprints used as idempotency keys.

A fingerprint is the SHA-256 hex digest of ``name|mtime|size`` where mtime
is ISO-8601 in UTC. File contents are never read, so a replacement with the
same name, mtime and size is not detected.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

from filemover.core.types import SourceEntry, utc


def canonical_string(name: str, mtime: datetime, size: int) -> str:
    return f"{name}|{utc(mtime).isoformat()}|{int(size)}"


def fingerprint(name: str, mtime: datetime, size: int) -> str:
    """
    Deterministic digest of file metadata.

    Naive datetimes are taken as UTC, so the same instant always hashes the
    same regardless of the zone it was expressed in.
    """
    return hashlib.sha256(canonical_string(name, mtime, size).encode("utf-8")).hexdigest()


def fingerprint_entry(entry: SourceEntry) -> str:
    return fingerprint(entry.name, entry.mtime, entry.size)
