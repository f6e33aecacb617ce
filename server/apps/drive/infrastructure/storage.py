"""Local filesystem storage backend for user files."""

import logging
from pathlib import Path
from typing import Any, final

from typing_extensions import override

from django.core.files.move import file_move_safe
from django.core.files.storage import FileSystemStorage

logger = logging.getLogger(__name__)


@final
class UserFileStorage(FileSystemStorage):
    """Filesystem storage rooted at one directory.

    Extends Django's FileSystemStorage with:
    - Overwrite on save (a same-named file is replaced, never renamed)
    - Best-effort rollback of written files
    - Moving staged files in from another directory
    - Enhanced error logging
    """

    def __init__(self, location: Path) -> None:
        """Initialize storage for a directory.

        Args:
            location: Directory the storage reads and writes.
        """
        super().__init__(location=str(location), allow_overwrite=True)

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to disk with error handling and logging.

        Args:
            name: File name relative to the storage location.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Name the file was saved under.

        Raises:
            OSError: If writing fails.
        """
        try:
            logger.debug('Writing file to storage: %s', self.path(name))
            saved_name = super().save(name, content, max_length)
        except Exception:
            logger.exception('Failed to write file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from disk with error handling and logging.

        A missing file is not an error.

        Args:
            name: File name relative to the storage location.

        Raises:
            OSError: If deletion fails.
        """
        try:
            logger.info('Deleting file from storage: %s', self.path(name))
            super().delete(name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> bool:
        """Delete a file written by an upload that did not complete.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, so it never hides the reason the
        upload was abandoned.

        Args:
            name: File name relative to the storage location.

        Returns:
            True if the file is gone, False if it is left behind.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
        except OSError:
            # The file stays on disk without having been accepted
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                self.path(name),
            )
            return False
        return True

    def move_into(self, source: Path, name: str) -> str:
        """Move a file from another directory into this storage.

        On the same filesystem this is an atomic rename, so readers
        see either the previous file or the complete new one.
        An existing file with the same name is replaced.

        Args:
            source: Absolute path of the file to move.
            name: Target file name relative to the storage location.

        Returns:
            Name the file was stored under.

        Raises:
            OSError: If the move fails.
        """
        destination = self.path(name)
        try:
            file_move_safe(str(source), destination, allow_overwrite=True)
            logger.info('Stored file: %s', destination)
        except Exception:
            logger.exception('Move failed: %s -> %s', source, destination)
            raise
        return name
