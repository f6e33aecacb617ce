"""Storage context shared by all drive components."""

import functools
import threading
import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, final

from django.conf import settings

# Directory (under the base dir) holding in-flight uploads
_STAGING_DIR_NAME: Final = '.staging'


@final
@dataclass(frozen=True, slots=True)
class StorageIdentity:
    """The principal a storage operation runs on behalf of.

    ``folder_name`` is validated by the account layer and never
    changes for the lifetime of the account.
    """

    user_id: int
    folder_name: str


@final
@dataclass(frozen=True)
class StorageContext:
    """Filesystem settings passed explicitly into every component.

    Tests build one around ``tmp_path``; the web layer builds one
    from Django settings with :meth:`from_settings`.
    """

    base_dir: Path
    serialize_uploads: bool = False
    _locks: weakref.WeakValueDictionary[int, threading.Lock] = field(
        default_factory=weakref.WeakValueDictionary,
        init=False,
        repr=False,
        compare=False,
    )
    _locks_guard: threading.Lock = field(
        default_factory=threading.Lock,
        init=False,
        repr=False,
        compare=False,
    )

    @classmethod
    def from_settings(cls) -> 'StorageContext':
        """Build context from Django settings.

        Requests running with the same settings share one context,
        so upload locks apply across requests.

        Returns:
            StorageContext for the configured upload directory.
        """
        return _shared_context(
            Path(settings.UPLOAD_BASE_DIR),
            settings.STORAGE_SERIALIZE_UPLOADS,
        )

    @property
    def staging_dir(self) -> Path:
        """Directory for uploads that are not committed yet."""
        return self.base_dir / _STAGING_DIR_NAME

    def lock_for(self, identity: StorageIdentity) -> threading.Lock:
        """Get the upload lock of one identity.

        A lock lives only while some transaction holds a reference
        to it, so the registry does not grow with every user seen.

        Args:
            identity: Identity to lock.

        Returns:
            Lock shared by all running transactions of this identity.
        """
        with self._locks_guard:
            lock = self._locks.get(identity.user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[identity.user_id] = lock
            return lock


@functools.cache
def _shared_context(base_dir: Path, serialize_uploads: bool) -> StorageContext:
    return StorageContext(base_dir=base_dir, serialize_uploads=serialize_uploads)
