"""Business logic for listing, downloading and deleting stored files."""

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from operator import attrgetter
from pathlib import Path
from typing import final

from django.urls import reverse

from server.apps.drive.exceptions import (
    StorageIOError,
    StoredFileNotFoundError,
)
from server.apps.drive.infrastructure.context import (
    StorageContext,
    StorageIdentity,
)
from server.apps.drive.infrastructure.metadata import format_file_size
from server.apps.drive.infrastructure.paths import PathResolver
from server.apps.drive.infrastructure.scanner import iter_stored_files
from server.apps.drive.infrastructure.storage import UserFileStorage

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A stored file as shown to its owner."""

    name: str
    size_bytes: int
    size_formatted: str
    modified_at: datetime
    download_url: str


def list_files(root: Path) -> list[CatalogEntry]:
    """List files of a storage root, most recently modified first.

    Args:
        root: Storage root directory.

    Returns:
        Catalog entries; empty if the root does not exist.
    """
    entries = [
        CatalogEntry(
            name=stored.name,
            size_bytes=stored.size_bytes,
            size_formatted=format_file_size(stored.size_bytes),
            modified_at=stored.modified_at,
            download_url=reverse('drive:download', args=[stored.name]),
        )
        for stored in iter_stored_files(root)
    ]
    entries.sort(key=attrgetter('modified_at'), reverse=True)
    logger.debug('Listed %d files in %s', len(entries), root)
    return entries


def list_user_files(
    context: StorageContext,
    identity: StorageIdentity,
) -> list[CatalogEntry]:
    """List files of an identity's storage root.

    Args:
        context: Storage context.
        identity: Owner of the files.

    Returns:
        Catalog entries, most recent first.
    """
    return list_files(PathResolver(context).resolve_root(identity))


def get_stored_file(
    context: StorageContext,
    identity: StorageIdentity,
    name: str,
) -> Path:
    """Get path of a stored file for download.

    Args:
        context: Storage context.
        identity: Owner of the file.
        name: Requested file name.

    Returns:
        Path of the existing file.

    Raises:
        PathTraversalError: If the name escapes the storage root.
        StoredFileNotFoundError: If no such file is stored.
    """
    resolver = PathResolver(context)
    member = resolver.resolve_member(resolver.resolve_root(identity), name)
    if not member.is_file():
        raise StoredFileNotFoundError(name)
    return member


def delete_file(
    context: StorageContext,
    identity: StorageIdentity,
    name: str,
) -> None:
    """Delete a stored file.

    Args:
        context: Storage context.
        identity: Owner of the file.
        name: Requested file name.

    Raises:
        PathTraversalError: If the name escapes the storage root.
        StoredFileNotFoundError: If no such file is stored.
        StorageIOError: If the file cannot be removed.
    """
    resolver = PathResolver(context)
    root = resolver.resolve_root(identity)
    member = resolver.resolve_member(root, name)
    if not member.is_file():
        logger.info(
            'File not found for user %d: %r',
            identity.user_id,
            name,
        )
        raise StoredFileNotFoundError(name)

    try:
        UserFileStorage(root).delete(name)
    except OSError as error:
        raise StorageIOError('delete file') from error

    logger.info('Deleted file for user %d: %r', identity.user_id, name)


def purge_storage_root(
    context: StorageContext,
    identity: StorageIdentity,
) -> bool:
    """Remove an identity's storage root with all its files.

    Used when the owning account is removed. This is a best-effort
    operation - failures are logged, not raised, since the account
    is already gone.

    Args:
        context: Storage context.
        identity: Former owner of the storage root.

    Returns:
        True if the root no longer exists, False otherwise.
    """
    root = PathResolver(context).resolve_root(identity)
    try:
        shutil.rmtree(root)
    except FileNotFoundError:
        return True
    except OSError:
        logger.exception('Failed to purge storage root: %s', root)
        return False

    logger.info('Purged storage root of user %d', identity.user_id)
    return True
