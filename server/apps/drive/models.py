"""Database models for drive app."""

from typing import Final, final

from typing_extensions import override

from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models

from server.apps.drive.infrastructure.context import StorageIdentity
from server.apps.drive.infrastructure.metadata import BYTES_PER_MB

# Constants for field max lengths
_FOLDER_NAME_MAX_LENGTH: Final = 150

# Default quota: 100 MB
_DEFAULT_QUOTA_MB: Final = 100

# Folder names are used verbatim as directory names
FOLDER_NAME_PATTERN: Final = r'^[A-Za-z0-9_]+$'


@final
class StorageAccount(models.Model):
    """Storage settings of a user.

    Links a user to a private directory under the upload base
    directory and a quota in megabytes. Usage is not stored here:
    it is computed by scanning the directory whenever needed.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='storage_account',
        primary_key=True,
    )

    folder_name = models.CharField(
        max_length=_FOLDER_NAME_MAX_LENGTH,
        unique=True,
        validators=[
            RegexValidator(
                regex=FOLDER_NAME_PATTERN,
                message='Use letters, digits and underscores only.',
            ),
        ],
        help_text='Directory name under the upload base directory',
    )

    quota_mb = models.PositiveIntegerField(
        default=_DEFAULT_QUOTA_MB,
        help_text='Storage quota in megabytes (0 = unlimited)',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Storage Account'  # type: ignore[mutable-override]
        verbose_name_plural = 'Storage Accounts'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}: {self.folder_name} ({self.quota_mb} MB)'

    @property
    def identity(self) -> StorageIdentity:
        """Identity used by the storage layer."""
        return StorageIdentity(
            user_id=self.user_id,  # type: ignore[attr-defined]
            folder_name=self.folder_name,
        )

    @property
    def quota_bytes(self) -> int:
        """Quota in bytes (0 = unlimited)."""
        return self.quota_mb * BYTES_PER_MB
