"""Business logic for storage quota decisions."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import final

from server.apps.drive.infrastructure.context import (
    StorageContext,
    StorageIdentity,
)
from server.apps.drive.infrastructure.metadata import (
    BYTES_PER_MB,
    format_file_size,
    format_quota,
)
from server.apps.drive.infrastructure.paths import PathResolver
from server.apps.drive.infrastructure.scanner import scan_usage

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class QuotaAdmission:
    """Batch fits into the quota."""

    new_usage: int
    percent_used: float


@final
@dataclass(frozen=True, slots=True)
class QuotaRejection:
    """Batch does not fit into the quota."""

    quota_bytes: int
    used_bytes: int
    needed_bytes: int
    over_by: int

    @property
    def available_bytes(self) -> int:
        """Get space left before the batch (never negative)."""
        return max(0, self.quota_bytes - self.used_bytes)

    @property
    def message(self) -> str:
        """Human-readable reason shown to the user."""
        return (
            f'Quota exceeded. You have {format_file_size(self.available_bytes)} '
            f'available, need {format_file_size(self.needed_bytes)}'
        )


@final
@dataclass(frozen=True, slots=True)
class UsageReport:
    """Live usage figures of one storage root."""

    storage_used_bytes: int
    storage_used_formatted: str
    storage_quota_bytes: int
    storage_quota_formatted: str
    usage_percentage: float


def quota_mb_to_bytes(quota_mb: int) -> int:
    """Convert a megabyte quota to bytes.

    Args:
        quota_mb: Quota in megabytes (0 means unlimited).

    Returns:
        Quota in bytes.
    """
    return quota_mb * BYTES_PER_MB


def usage_percentage(usage_bytes: int, quota_bytes: int) -> float:
    """Get usage as percent of quota, capped at 100.

    Args:
        usage_bytes: Bytes in use.
        quota_bytes: Quota in bytes, 0 or less means unlimited.

    Returns:
        Percentage between 0 and 100; 0 for unlimited quota.
    """
    if quota_bytes <= 0:
        return 0
    return min(100, usage_bytes * 100 / quota_bytes)


def admit(
    current_usage: int,
    quota_bytes: int,
    incoming_sizes: Iterable[int],
) -> QuotaAdmission | QuotaRejection:
    """Decide whether a batch of files fits into the quota.

    The limit is inclusive: filling the quota exactly is allowed.
    A quota of 0 (or less) means unlimited.

    Args:
        current_usage: Bytes used before the batch.
        quota_bytes: Quota in bytes.
        incoming_sizes: Sizes of the files in the batch.

    Returns:
        QuotaAdmission with the new usage, or QuotaRejection
        describing by how much the quota would be exceeded.
    """
    total = sum(incoming_sizes)
    new_usage = current_usage + total

    if quota_bytes > 0 and new_usage > quota_bytes:
        return QuotaRejection(
            quota_bytes=quota_bytes,
            used_bytes=current_usage,
            needed_bytes=total,
            over_by=new_usage - quota_bytes,
        )

    return QuotaAdmission(
        new_usage=new_usage,
        percent_used=usage_percentage(new_usage, quota_bytes),
    )


def get_usage_report(
    context: StorageContext,
    identity: StorageIdentity,
    quota_mb: int,
) -> UsageReport:
    """Scan an identity's storage root and report usage.

    Args:
        context: Storage context.
        identity: Owner of the storage root.
        quota_mb: Quota of the identity in megabytes.

    Returns:
        UsageReport with raw and formatted figures.
    """
    root = PathResolver(context).resolve_root(identity)
    used_bytes = scan_usage(root)
    quota_bytes = quota_mb_to_bytes(quota_mb)

    return UsageReport(
        storage_used_bytes=used_bytes,
        storage_used_formatted=format_file_size(used_bytes),
        storage_quota_bytes=quota_bytes,
        storage_quota_formatted=format_quota(quota_mb),
        usage_percentage=usage_percentage(used_bytes, quota_bytes),
    )
