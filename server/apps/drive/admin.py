"""Django admin configuration for drive app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.drive.exceptions import StorageIOError
from server.apps.drive.infrastructure.context import StorageContext
from server.apps.drive.logic.quota_operations import get_usage_report
from server.apps.drive.models import StorageAccount


@admin.register(StorageAccount)
class StorageAccountAdmin(admin.ModelAdmin[StorageAccount]):
    """Admin interface for StorageAccount model.

    User accounts themselves are managed through the regular
    user admin; this screen sets folders and quotas.
    """

    list_display = [
        'user',
        'folder_name',
        'quota_mb',
        'usage_display',
        'created_at',
    ]

    search_fields = [
        'user__username',
        'folder_name',
    ]

    readonly_fields = [
        'usage_display',
        'created_at',
    ]

    fieldsets = (
        ('Account', {
            'fields': ('user', 'folder_name'),
        }),
        ('Quota', {
            'fields': ('quota_mb', 'usage_display'),
        }),
        ('Timestamps', {
            'fields': ('created_at',),
        }),
    )

    def get_readonly_fields(
        self,
        request: HttpRequest,
        obj: StorageAccount | None = None,
    ) -> list[str]:
        """Lock the folder name once the account exists.

        Args:
            request: HTTP request.
            obj: Account being edited, None when adding.

        Returns:
            Read-only field names.
        """
        if obj is None:
            return list(self.readonly_fields)
        return [*self.readonly_fields, 'user', 'folder_name']

    def usage_display(self, obj: StorageAccount) -> str:
        """Display live usage of the account's directory.

        Args:
            obj: StorageAccount instance.

        Returns:
            Formatted usage (e.g., '1.50 MB / 100 MB (1.5%)').
        """
        if obj.pk is None:
            return '-'
        try:
            report = get_usage_report(
                StorageContext.from_settings(),
                obj.identity,
                obj.quota_mb,
            )
        except StorageIOError:
            return 'unavailable'
        return '{0} / {1} ({2:.1f}%)'.format(
            report.storage_used_formatted,
            report.storage_quota_formatted,
            report.usage_percentage,
        )
    usage_display.short_description = 'Usage'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[StorageAccount]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')
