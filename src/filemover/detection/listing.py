"""
Source location listing.
"""

from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime

from filemover.core.types import PARTIAL_SUFFIX, LocationType, SourceEntry
from filemover.utils.logging import get_logger

logger = get_logger("filemover.detection.listing")


def _list_directory(path: str) -> list[SourceEntry]:
    entries = []
    with os.scandir(path) as it:
        for item in it:
            if not item.is_file(follow_symlinks=True):
                continue
            # Partial copies from a concurrent write-then-rename
            if item.name.endswith(PARTIAL_SUFFIX):
                logger.debug(f"Skipping in-flight copy {item.path}")
                continue
            stat = item.stat()
            entries.append(
                SourceEntry(
                    path=item.path,
                    name=item.name,
                    size=stat.st_size,
                    mtime=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                )
            )
    entries.sort(key=lambda e: e.name)
    return entries


async def list_source(source_type: str, location: str) -> list[SourceEntry]:
    """
    List files at a source location, sorted by name.

    A missing DFS directory logs a warning and yields nothing. SFTP sources
    are not implemented and also yield nothing.
    """
    kind = source_type.upper()
    if kind == LocationType.DFS:
        if not os.path.isdir(location):
            logger.warning(f"Source directory does not exist: {location}")
            return []
        return await asyncio.to_thread(_list_directory, location)

    if kind == LocationType.SFTP:
        logger.warning(f"SFTP sources are not supported; skipping {location}")
        return []

    logger.warning(f"Unknown source type '{source_type}'; skipping {location}")
    return []
