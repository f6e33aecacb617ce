"""Metadata helpers for stored files."""

import mimetypes
from typing import Final

_SIZE_UNITS: Final = ('Bytes', 'KB', 'MB', 'GB', 'TB')
_UNIT_STEP: Final = 1024

# Bytes in one quota megabyte
BYTES_PER_MB: Final = _UNIT_STEP * _UNIT_STEP


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return 'application/octet-stream'
    return mime_type


def format_file_size(size_bytes: int) -> str:
    """Format size in human-readable base-1024 units.

    Picks the largest unit (up to TB) keeping the value at
    least 1 and renders it with two decimals.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size (e.g., '0 Bytes', '1.50 KB', '10.00 MB').
    """
    if size_bytes <= 0:
        return '0 Bytes'

    value = float(size_bytes)
    unit_index = 0
    while value >= _UNIT_STEP and unit_index < len(_SIZE_UNITS) - 1:
        value /= _UNIT_STEP
        unit_index += 1
    return f'{value:.2f} {_SIZE_UNITS[unit_index]}'


def format_quota(quota_mb: int) -> str:
    """Format a megabyte quota as configured.

    Args:
        quota_mb: Quota in megabytes.

    Returns:
        Formatted quota (e.g., '100 MB').
    """
    return f'{quota_mb} MB'
