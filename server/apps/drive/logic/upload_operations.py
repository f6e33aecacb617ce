"""Business logic for quota-checked multi-file uploads.

An upload runs as a small state machine::

    RECEIVING -> DECIDING -> COMMITTED
                          -> ROLLED_BACK

Bytes are first staged in a private directory next to the storage
roots ({base_dir}/.staging/{uuid}), so a file that is still arriving
is never listed. The quota decision uses the usage of the untouched
root plus the declared sizes of the batch. Only admitted batches are
moved into the root, under their original names.
"""

import enum
import logging
import shutil
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, final

from server.apps.drive.exceptions import (
    StorageIOError,
    TruncatedUploadError,
)
from server.apps.drive.infrastructure.context import (
    StorageContext,
    StorageIdentity,
)
from server.apps.drive.infrastructure.metadata import detect_mime_type
from server.apps.drive.infrastructure.paths import PathResolver
from server.apps.drive.infrastructure.scanner import scan_usage
from server.apps.drive.infrastructure.storage import UserFileStorage
from server.apps.drive.logic.quota_operations import (
    QuotaRejection,
    admit,
)

logger = logging.getLogger(__name__)


class UploadState(enum.Enum):
    """Lifecycle of an upload transaction."""

    RECEIVING = 'receiving'
    DECIDING = 'deciding'
    COMMITTED = 'committed'
    ROLLED_BACK = 'rolled_back'


@final
@dataclass(frozen=True, slots=True)
class IncomingFile:
    """One file of an upload batch.

    ``data`` is any readable binary file-like object (Django's
    UploadedFile included). ``size`` is the size announced by the
    client; when omitted, the number of bytes received is used.
    """

    name: str
    data: Any
    size: int | None = None
    content_type: str | None = None


@final
@dataclass(frozen=True, slots=True)
class StoredFileDescriptor:
    """A file accepted into the storage root."""

    original_name: str
    stored_name: str
    size_bytes: int
    mime_type: str


@final
@dataclass(frozen=True, slots=True)
class UploadCommitted:
    """Batch admitted and stored."""

    files: tuple[StoredFileDescriptor, ...]
    total_size: int
    storage_used: int
    storage_quota: int
    usage_percentage: float

    @property
    def file_count(self) -> int:
        """Number of files in the batch."""
        return len(self.files)


@final
@dataclass(frozen=True, slots=True)
class UploadRejected:
    """Batch refused because of the quota; nothing was stored."""

    rejection: QuotaRejection

    @property
    def message(self) -> str:
        """Human-readable reason shown to the user."""
        return self.rejection.message


UploadResult = UploadCommitted | UploadRejected


@dataclass(frozen=True, slots=True)
class _StagedFile:
    incoming: IncomingFile
    staged_name: str
    size_bytes: int


@final
class UploadTransaction:
    """Stores a batch of files for one identity, all or nothing.

    A transaction is single use: create one per request.
    """

    def __init__(
        self,
        context: StorageContext,
        identity: StorageIdentity,
        quota_bytes: int,
    ) -> None:
        """Initialize upload transaction.

        Args:
            context: Storage context.
            identity: Owner of the target storage root.
            quota_bytes: Quota of the identity in bytes (0 = unlimited).
        """
        self._context = context
        self._identity = identity
        self._quota_bytes = quota_bytes
        self._resolver = PathResolver(context)
        self._state = UploadState.RECEIVING
        self._staged: list[_StagedFile] = []
        self._committed: list[str] = []
        self._used_before = 0

    @property
    def state(self) -> UploadState:
        """Current state of the transaction."""
        return self._state

    def execute(self, incoming_files: Sequence[IncomingFile]) -> UploadResult:
        """Stage, check against quota, then commit or roll back.

        Args:
            incoming_files: Files of the batch, in request order.

        Returns:
            UploadCommitted or UploadRejected.

        Raises:
            RuntimeError: If the transaction was already executed.
            PathTraversalError: If any name escapes the storage root.
            StorageIOError: If writing fails or a file arrives truncated.
        """
        if self._state is not UploadState.RECEIVING:
            raise RuntimeError('Upload transaction can only run once')

        if self._context.serialize_uploads:
            # Referenced here until released, see StorageContext.lock_for
            lock = self._context.lock_for(self._identity)
            with lock:
                return self._run(incoming_files)
        return self._run(incoming_files)

    def _run(self, incoming_files: Sequence[IncomingFile]) -> UploadResult:
        root = self._resolver.resolve_root(self._identity)
        # Validate every name before writing a single byte
        for incoming in incoming_files:
            self._resolver.resolve_member(root, incoming.name)
        self._resolver.ensure_root(root)

        root_storage = UserFileStorage(root)
        staging_dir = self._context.staging_dir / uuid.uuid4().hex
        staging = UserFileStorage(staging_dir)
        try:
            for index, incoming in enumerate(incoming_files):
                self._stage(staging, index, incoming)

            self._state = UploadState.DECIDING
            self._used_before = scan_usage(root)
            decision = admit(
                self._used_before,
                self._quota_bytes,
                [staged.size_bytes for staged in self._staged],
            )
            if isinstance(decision, QuotaRejection):
                logger.warning(
                    'Quota exceeded for user %d: need %d, have %d available',
                    self._identity.user_id,
                    decision.needed_bytes,
                    decision.available_bytes,
                )
                self._rollback(root_storage, staging)
                return UploadRejected(rejection=decision)

            self._commit(root_storage, staging)
            return self._committed_result(
                decision.new_usage,
                decision.percent_used,
            )
        except Exception:
            logger.exception(
                'Upload failed for user %d, rolling back %d files',
                self._identity.user_id,
                len(self._staged),
            )
            self._rollback(root_storage, staging)
            raise
        finally:
            _remove_staging_dir(staging_dir)

    def _stage(
        self,
        staging: UserFileStorage,
        index: int,
        incoming: IncomingFile,
    ) -> None:
        staged_name = f'{index:04d}.part'
        try:
            staging.save(staged_name, incoming.data)
            received = staging.size(staged_name)
        except OSError as error:
            raise StorageIOError('write uploaded file') from error

        self._staged.append(_StagedFile(
            incoming=incoming,
            staged_name=staged_name,
            size_bytes=received,
        ))
        if incoming.size is not None and incoming.size != received:
            raise TruncatedUploadError(incoming.name, incoming.size, received)

    def _commit(
        self,
        root_storage: UserFileStorage,
        staging: UserFileStorage,
    ) -> None:
        for staged in self._staged:
            try:
                root_storage.move_into(
                    Path(staging.path(staged.staged_name)),
                    staged.incoming.name,
                )
            except OSError as error:
                raise StorageIOError('store uploaded file') from error
            # Same-named files were replaced: last write wins
            self._committed.append(staged.incoming.name)

        self._state = UploadState.COMMITTED
        logger.info(
            'Stored %d files for user %d',
            len(self._committed),
            self._identity.user_id,
        )

    def _rollback(
        self,
        root_storage: UserFileStorage,
        staging: UserFileStorage,
    ) -> None:
        orphaned = [
            name
            for name in self._committed
            if not root_storage.rollback_upload(name)
        ]
        # Files are committed in order, the rest is still staged
        orphaned.extend(
            staged.staged_name
            for staged in self._staged[len(self._committed):]
            if not staging.rollback_upload(staged.staged_name)
        )
        self._state = UploadState.ROLLED_BACK

        if orphaned:
            logger.error(
                'Rollback left %d files behind for user %d',
                len(orphaned),
                self._identity.user_id,
            )

    def _committed_result(
        self,
        new_usage: int,
        percent_used: float,
    ) -> UploadCommitted:
        files = tuple(
            StoredFileDescriptor(
                original_name=staged.incoming.name,
                stored_name=staged.incoming.name,
                size_bytes=staged.size_bytes,
                mime_type=(
                    staged.incoming.content_type
                    or detect_mime_type(staged.incoming.name)
                ),
            )
            for staged in self._staged
        )
        return UploadCommitted(
            files=files,
            total_size=new_usage - self._used_before,
            storage_used=new_usage,
            storage_quota=self._quota_bytes,
            usage_percentage=percent_used,
        )


def execute_upload(
    context: StorageContext,
    identity: StorageIdentity,
    incoming_files: Sequence[IncomingFile],
    quota_bytes: int,
) -> UploadResult:
    """Upload a batch of files for an identity.

    Args:
        context: Storage context.
        identity: Owner of the target storage root.
        incoming_files: Files of the batch.
        quota_bytes: Quota of the identity in bytes (0 = unlimited).

    Returns:
        UploadCommitted or UploadRejected.
    """
    transaction = UploadTransaction(context, identity, quota_bytes)
    return transaction.execute(incoming_files)


def _remove_staging_dir(staging_dir: Path) -> None:
    try:
        shutil.rmtree(staging_dir)
    except FileNotFoundError:
        return
    except OSError:
        logger.exception('Failed to remove staging directory: %s', staging_dir)
