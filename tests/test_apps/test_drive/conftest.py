"""Shared fixtures for drive app tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from django.contrib.auth import get_user_model

from server.apps.drive.infrastructure.context import (
    StorageContext,
    StorageIdentity,
)

User = get_user_model()

MB = 1024 * 1024


@pytest.fixture(autouse=True)
def upload_base_dir(settings, tmp_path):
    """Point the upload base directory into a temporary directory.

    Returns:
        Base directory used by settings-based storage contexts.
    """
    base_dir = tmp_path / 'uploads'
    settings.UPLOAD_BASE_DIR = base_dir
    return base_dir


@pytest.fixture
def storage_context(upload_base_dir):
    """Storage context around the temporary base directory.

    Returns:
        StorageContext instance.
    """
    return StorageContext(base_dir=upload_base_dir)


@pytest.fixture
def identity():
    """Identity whose storage folder is 'alice'.

    Returns:
        StorageIdentity instance.
    """
    return StorageIdentity(user_id=1, folder_name='alice')


@pytest.fixture
def storage_root(storage_context, identity):
    """Existing storage root of the identity.

    Returns:
        Path of the created directory.
    """
    root = storage_context.base_dir / identity.folder_name
    root.mkdir(parents=True)
    return root


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Factory writing a file of a given size into a directory.

    Returns:
        Function (directory, name, size_bytes) -> Path.
    """
    def factory(directory: Path, name: str, size_bytes: int) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_bytes(b'x' * size_bytes)
        return path
    return factory


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def staff_user(db):
    """Create staff user allowed to inspect other users.

    Returns:
        Staff user instance.
    """
    return User.objects.create_user(
        username='admin',
        password='adminpass123',
        is_staff=True,
    )
