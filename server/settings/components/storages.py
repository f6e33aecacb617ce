"""Per-user file storage configuration.

Each user owns one directory directly under ``UPLOAD_BASE_DIR``,
named after the user's storage folder. Files are stored flat,
under the name the client sent.
"""

from pathlib import Path
from typing import Final

from server.settings.components import BASE_DIR, config

UPLOAD_BASE_DIR: Final = Path(config(
    'UPLOAD_BASE_DIR',
    default=str(BASE_DIR.joinpath('uploads')),
))

# Quota assigned to accounts created on demand (0 means unlimited)
DEFAULT_QUOTA_MB: Final = config('DEFAULT_QUOTA_MB', cast=int, default=100)

# Per-request upload limits, enforced before the quota check
MAX_FILE_SIZE_MB: Final = config('MAX_FILE_SIZE_MB', cast=int, default=100)
MAX_FILES_PER_UPLOAD: Final = config(
    'MAX_FILES_PER_UPLOAD',
    cast=int,
    default=10,
)

# Hold a per-user lock across scan, decide and commit of an upload.
# Off by default: two concurrent uploads of one user may both pass.
STORAGE_SERIALIZE_UPLOADS: Final = config(
    'STORAGE_SERIALIZE_UPLOADS',
    cast=bool,
    default=False,
)
