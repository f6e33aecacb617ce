"""Management command to report live storage usage of all accounts."""

import logging
from typing import Any

from django.core.management.base import BaseCommand

from server.apps.drive.exceptions import StorageIOError
from server.apps.drive.infrastructure.context import StorageContext
from server.apps.drive.logic.quota_operations import get_usage_report
from server.apps.drive.models import StorageAccount

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Scan every storage root and print usage against quota."""

    help = 'Report storage usage of all accounts'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--over-quota',
            action='store_true',
            help='Only show accounts using more than their quota',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the usage report command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        over_quota_only = options['over_quota']
        context = StorageContext.from_settings()

        accounts = StorageAccount.objects.select_related('user').order_by(
            'folder_name',
        )

        shown = 0
        failed = 0
        for account in accounts:
            try:
                report = get_usage_report(
                    context,
                    account.identity,
                    account.quota_mb,
                )
            except StorageIOError as exc:
                self.stderr.write(
                    f'Failed to scan {account.folder_name}: {exc}',
                )
                failed += 1
                continue

            over_quota = (
                report.storage_quota_bytes > 0
                and report.storage_used_bytes > report.storage_quota_bytes
            )
            if over_quota_only and not over_quota:
                continue

            marker = ' OVER QUOTA' if over_quota else ''
            self.stdout.write(
                f'{account.user.get_username()} ({account.folder_name}): '
                f'{report.storage_used_formatted} / '
                f'{report.storage_quota_formatted} '
                f'({report.usage_percentage:.1f}%){marker}',
            )
            shown += 1

        self.stdout.write(
            self.style.SUCCESS(
                f'Reported {shown} accounts, {failed} failed',
            ),
        )
