"""Signal handlers for drive app."""

import functools
import logging

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from server.apps.drive.exceptions import StorageIOError
from server.apps.drive.infrastructure.context import StorageContext
from server.apps.drive.logic.account_operations import (
    ensure_account_root,
    get_or_create_account,
)
from server.apps.drive.logic.file_operations import purge_storage_root
from server.apps.drive.models import StorageAccount

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_storage_account(
    sender: type,
    instance: object,
    created: bool,
    **kwargs: object,
) -> None:
    """Give every new user a storage account.

    Args:
        sender: The user model class.
        instance: The saved user.
        created: Whether the user was just created.
        **kwargs: Additional signal arguments.
    """
    if created and not kwargs.get('raw', False):
        get_or_create_account(instance)


@receiver(post_save, sender=StorageAccount)
def create_storage_root(
    sender: type[StorageAccount],
    instance: StorageAccount,
    created: bool,
    **kwargs: object,
) -> None:
    """Create the storage directory of a new account.

    The directory is created again on login and on first upload,
    so a failure here is logged and not raised.

    Args:
        sender: The StorageAccount model class.
        instance: The saved account.
        created: Whether the account was just created.
        **kwargs: Additional signal arguments.
    """
    if not created or kwargs.get('raw', False):
        return

    try:
        ensure_account_root(StorageContext.from_settings(), instance)
    except StorageIOError:
        logger.warning(
            'Storage root of %s will be created on first access',
            instance.folder_name,
        )


@receiver(post_delete, sender=StorageAccount)
def delete_storage_root(
    sender: type[StorageAccount],
    instance: StorageAccount,
    **kwargs: object,
) -> None:
    """Delete the storage directory when its account is deleted.

    This signal handler ensures that when a StorageAccount is deleted
    (directly, or through deletion of its user), all files of the
    account are removed from disk as well. The purge waits for the
    deleting transaction to commit, so a rolled back delete keeps
    its files.

    Args:
        sender: The StorageAccount model class.
        instance: The StorageAccount instance being deleted.
        **kwargs: Additional signal arguments.
    """
    logger.info(
        'Purging storage root once account delete commits: %s',
        instance.folder_name,
    )
    transaction.on_commit(
        functools.partial(
            purge_storage_root,
            StorageContext.from_settings(),
            instance.identity,
        ),
    )
