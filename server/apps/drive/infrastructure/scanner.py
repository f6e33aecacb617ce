"""Live usage scanning of storage roots.

Usage is never cached: every admission decision and every usage
report enumerates the root again.
"""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import final

from server.apps.drive.exceptions import StorageIOError

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class StoredFile:
    """A regular file directly under a storage root."""

    name: str
    size_bytes: int
    modified_at: datetime


def iter_stored_files(root: Path) -> Iterator[StoredFile]:
    """Enumerate direct regular files of a storage root.

    Subdirectories and symlinks are skipped. A file removed between
    listing and stat is skipped as well.

    Args:
        root: Storage root directory.

    Yields:
        StoredFile for each file present.

    Raises:
        StorageIOError: If the directory cannot be read.
    """
    try:
        with os.scandir(root) as entries:
            for entry in entries:
                stored_file = _stat_entry(entry)
                if stored_file is not None:
                    yield stored_file
    except FileNotFoundError:
        return
    except OSError as error:
        logger.exception('Failed to scan storage root: %s', root)
        raise StorageIOError('read storage directory') from error


def scan_usage(root: Path) -> int:
    """Compute bytes used by a storage root.

    Args:
        root: Storage root directory.

    Returns:
        Sum of file sizes, 0 if the root does not exist.
    """
    total = sum(stored.size_bytes for stored in iter_stored_files(root))
    logger.debug('Scanned usage of %s: %d bytes', root, total)
    return total


def _stat_entry(entry: os.DirEntry[str]) -> StoredFile | None:
    try:
        if not entry.is_file(follow_symlinks=False):
            return None
        stat_result = entry.stat(follow_symlinks=False)
    except FileNotFoundError:
        # Deleted concurrently, counts as nothing
        logger.debug('File vanished during scan: %s', entry.path)
        return None
    return StoredFile(
        name=entry.name,
        size_bytes=stat_result.st_size,
        modified_at=datetime.fromtimestamp(stat_result.st_mtime, tz=UTC),
    )
