"""Path resolution between identities, storage roots and stored files.

Storage roots live directly under the base upload directory:
{base_dir}/{folder_name}. Stored files live directly under their root:
{base_dir}/{folder_name}/{name}. There are no subdirectories.
"""

import logging
from pathlib import Path
from typing import Final, final

from server.apps.drive.exceptions import PathTraversalError, StorageIOError
from server.apps.drive.infrastructure.context import (
    StorageContext,
    StorageIdentity,
)

# Names that never denote a stored file
_RESERVED_NAMES: Final = frozenset(('', '.', '..'))

logger = logging.getLogger(__name__)


@final
class PathResolver:
    """Maps identities to storage roots and validates member names.

    Every filename coming from a client passes through
    :meth:`resolve_member` before it is used for reading,
    writing or deleting.
    """

    def __init__(self, context: StorageContext) -> None:
        """Initialize path resolver with storage context.

        Args:
            context: Storage context holding the base directory.
        """
        self._context = context

    def resolve_root(self, identity: StorageIdentity) -> Path:
        """Get storage root of an identity.

        Does not touch the filesystem.

        Args:
            identity: Owner of the storage root.

        Returns:
            Absolute path of the identity's directory.

        Raises:
            PathTraversalError: If folder name is not a single safe component.
        """
        base_dir = self._context.base_dir.absolute()
        if not _is_plain_name(identity.folder_name):
            raise PathTraversalError(identity.folder_name)
        return base_dir / identity.folder_name

    def ensure_root(self, root: Path) -> Path:
        """Create storage root (and missing parents) if absent.

        Concurrent callers creating the same root do not fail.

        Args:
            root: Storage root from :meth:`resolve_root`.

        Returns:
            The same root, now existing.

        Raises:
            StorageIOError: If the directory cannot be created.
        """
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            logger.exception('Failed to create storage root: %s', root)
            raise StorageIOError('create storage directory') from error
        return root

    def resolve_member(self, root: Path, requested_name: str) -> Path:
        """Resolve a client-supplied file name inside a storage root.

        The joined path must sit directly under ``root``. Symlinks
        are resolved too, so a link pointing outside the root is
        rejected as well.

        Args:
            root: Storage root from :meth:`resolve_root`.
            requested_name: File name as sent by the client.

        Returns:
            Path of the member file (which may not exist yet).

        Raises:
            PathTraversalError: If the name escapes the root.
        """
        if not _is_plain_name(requested_name):
            logger.warning('Rejected file name: %r', requested_name)
            raise PathTraversalError(requested_name)

        member = root / requested_name
        if member.parent != root:
            logger.warning('Rejected file name: %r', requested_name)
            raise PathTraversalError(requested_name)

        resolved_root = root.resolve()
        if member.resolve().parent != resolved_root:
            logger.warning(
                'Rejected symlink escaping storage root: %r',
                requested_name,
            )
            raise PathTraversalError(requested_name)

        return member


def _is_plain_name(name: str) -> bool:
    """Check that a name is one path component without tricks.

    Args:
        name: Candidate file or folder name.

    Returns:
        True if name can be joined to a directory safely.
    """
    if name in _RESERVED_NAMES or '\x00' in name:
        return False
    if '/' in name or '\\' in name:
        return False
    return not Path(name).is_absolute()
