"""
Destination writers, selected by a config's destination type.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from filemover.core.types import PARTIAL_SUFFIX, FileDetectedEvent, LocationType
from filemover.exceptions import TransferFailure
from filemover.utils.logging import get_logger

logger = get_logger("filemover.transfer.destinations")


class Destination(ABC):
    """Writes one detected file to its destination."""

    @abstractmethod
    async def write(self, event: FileDetectedEvent) -> str:
        """
        Transfer the file described by ``event``.

        Returns:
            Where the file was written

        Raises:
            TransferFailure: ``retryable`` tells the consumer whether another
                attempt could succeed
        """


def _copy_atomic(source: str, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(target.name + PARTIAL_SUFFIX)
    try:
        shutil.copy2(source, tmp)
        os.replace(tmp, target)
    except Exception:
        if tmp.exists():
            tmp.unlink()
        raise


class DfsDestination(Destination):
    """
    Copy into a local or mounted directory.

    Existing files are overwritten, so redelivered events are harmless. The
    copy goes to ``<name>.filemover-part`` first and is renamed into place, so readers
    never see a partial file.
    """

    async def write(self, event: FileDetectedEvent) -> str:
        if not event.destination_location:
            raise TransferFailure(
                f"Config {event.config_id} has no destination location",
                retryable=False,
                details={"config_id": event.config_id},
            )
        target = Path(event.destination_location) / event.file_name
        try:
            await asyncio.to_thread(_copy_atomic, event.file_path, target)
        except OSError as e:
            raise TransferFailure(
                f"Copy {event.file_path} -> {target} failed: {e}",
                details={"source": event.file_path, "target": str(target)},
            ) from e
        logger.info(f"Copied {event.file_name} to {target}")
        return str(target)


class SftpDestination(Destination):
    """
    Placeholder for SFTP delivery.

    No SFTP client is wired in. Every event fails permanently so it lands on
    the dead-letter channel instead of being acknowledged and lost.
    """

    async def write(self, event: FileDetectedEvent) -> str:
        logger.warning(f"SFTP destination not supported; dead-lettering {event.file_name}")
        raise TransferFailure(
            f"SFTP destinations are not supported ({event.destination_location})",
            retryable=False,
            details={"destination_type": LocationType.SFTP, "destination": event.destination_location},
        )


def default_destinations() -> dict[str, Destination]:
    return {
        LocationType.DFS: DfsDestination(),
        LocationType.SFTP: SftpDestination(),
    }
