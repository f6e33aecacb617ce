"""Business logic for storage accounts."""

import logging
import re
from typing import Any

from django.conf import settings

from server.apps.drive.infrastructure.context import StorageContext
from server.apps.drive.infrastructure.paths import PathResolver
from server.apps.drive.models import FOLDER_NAME_PATTERN, StorageAccount

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def default_folder_name(user: _User) -> str:
    """Pick the storage folder name for a new account.

    The username is used as-is when it is a safe directory name
    and no other account has claimed it yet. Otherwise the folder
    is named after the user id, with a numeric suffix if a username
    already took that name.

    Args:
        user: Owner of the new account.

    Returns:
        Folder name matching FOLDER_NAME_PATTERN.
    """
    username = user.get_username()
    if re.fullmatch(FOLDER_NAME_PATTERN, username) and not _folder_taken(username):
        return username

    fallback = f'user_{user.pk}'
    candidate = fallback
    suffix = 1
    while _folder_taken(candidate):
        suffix += 1
        candidate = f'{fallback}_{suffix}'
    return candidate


def get_or_create_account(user: _User) -> StorageAccount:
    """Get or create storage account for user (on-demand creation).

    Args:
        user: User to get account for.

    Returns:
        StorageAccount instance for the user.
    """
    account = StorageAccount.objects.filter(user=user).first()
    if account is not None:
        return account

    account, created = StorageAccount.objects.get_or_create(
        user=user,
        defaults={
            'folder_name': default_folder_name(user),
            'quota_mb': settings.DEFAULT_QUOTA_MB,
        },
    )
    if created:
        logger.info(
            'Created storage account for user %s: folder %s, %d MB',
            user.get_username(),
            account.folder_name,
            account.quota_mb,
        )
    return account


def ensure_account_root(
    context: StorageContext,
    account: StorageAccount,
) -> None:
    """Create the account's storage root if it does not exist yet.

    Args:
        context: Storage context.
        account: Owner of the storage root.

    Raises:
        StorageIOError: If the directory cannot be created.
    """
    resolver = PathResolver(context)
    resolver.ensure_root(resolver.resolve_root(account.identity))


def _folder_taken(folder_name: str) -> bool:
    return StorageAccount.objects.filter(folder_name=folder_name).exists()
