"""Tests for storage path resolution."""

import pytest

from server.apps.drive.exceptions import PathTraversalError, StorageIOError
from server.apps.drive.infrastructure.context import StorageIdentity
from server.apps.drive.infrastructure.paths import PathResolver


class TestResolveRoot:
    """Tests for resolve_root method."""

    def test_root_is_folder_under_base_dir(self, storage_context, identity):
        """Test root is the folder name directly under the base dir."""
        resolver = PathResolver(storage_context)

        root = resolver.resolve_root(identity)

        assert root == storage_context.base_dir / 'alice'
        assert root.is_absolute()

    def test_does_not_create_directory(self, storage_context, identity):
        """Test resolving does not touch the filesystem."""
        resolver = PathResolver(storage_context)

        root = resolver.resolve_root(identity)

        assert not root.exists()

    @pytest.mark.parametrize('folder_name', ['', '..', 'a/b', '/etc'])
    def test_rejects_unsafe_folder_name(self, storage_context, folder_name):
        """Test folder names that are not one plain component fail."""
        resolver = PathResolver(storage_context)

        with pytest.raises(PathTraversalError):
            resolver.resolve_root(StorageIdentity(1, folder_name))


class TestEnsureRoot:
    """Tests for ensure_root method."""

    def test_creates_missing_directory_and_parents(
        self,
        storage_context,
        identity,
    ):
        """Test root and missing base directory are created."""
        resolver = PathResolver(storage_context)
        root = resolver.resolve_root(identity)

        resolver.ensure_root(root)

        assert root.is_dir()

    def test_existing_directory_is_noop(self, storage_context, storage_root):
        """Test ensuring an existing root keeps its files."""
        resolver = PathResolver(storage_context)
        (storage_root / 'keep.txt').write_bytes(b'data')

        resolver.ensure_root(storage_root)
        resolver.ensure_root(storage_root)

        assert (storage_root / 'keep.txt').read_bytes() == b'data'

    def test_failure_raises_storage_io_error(
        self,
        storage_context,
        tmp_path,
        identity,
    ):
        """Test creation below a regular file fails cleanly."""
        blocker = tmp_path / 'blocker'
        blocker.write_bytes(b'')
        root = blocker / identity.folder_name

        with pytest.raises(StorageIOError):
            PathResolver(storage_context).ensure_root(root)


class TestResolveMember:
    """Tests for resolve_member method."""

    def test_plain_name_resolves_under_root(
        self,
        storage_context,
        storage_root,
    ):
        """Test a plain file name resolves directly under root."""
        resolver = PathResolver(storage_context)

        member = resolver.resolve_member(storage_root, 'report.pdf')

        assert member == storage_root / 'report.pdf'
        assert member.parent == storage_root

    @pytest.mark.parametrize('name', [
        '../../etc/passwd',
        '/etc/passwd',
        '..',
        '.',
        '',
        'nested/file.txt',
        '..\\secret.txt',
        'bad\x00name.txt',
    ])
    def test_rejects_traversal(self, storage_context, storage_root, name):
        """Test names escaping the root are rejected."""
        resolver = PathResolver(storage_context)

        with pytest.raises(PathTraversalError) as exc_info:
            resolver.resolve_member(storage_root, name)

        assert exc_info.value.requested_name == name

    def test_error_message_has_no_absolute_path(
        self,
        storage_context,
        storage_root,
    ):
        """Test the client-facing message does not leak the root."""
        resolver = PathResolver(storage_context)

        with pytest.raises(PathTraversalError) as exc_info:
            resolver.resolve_member(storage_root, '../../etc/passwd')

        assert str(storage_root) not in str(exc_info.value)

    def test_rejects_symlink_escape(self, storage_context, storage_root, tmp_path):
        """Test a symlink pointing outside the root is rejected."""
        outside = tmp_path / 'outside.txt'
        outside.write_bytes(b'secret')
        (storage_root / 'link.txt').symlink_to(outside)
        resolver = PathResolver(storage_context)

        with pytest.raises(PathTraversalError):
            resolver.resolve_member(storage_root, 'link.txt')

    def test_allows_symlink_inside_root(self, storage_context, storage_root):
        """Test a symlink to a sibling file stays inside the root."""
        (storage_root / 'real.txt').write_bytes(b'data')
        (storage_root / 'alias.txt').symlink_to(storage_root / 'real.txt')
        resolver = PathResolver(storage_context)

        member = resolver.resolve_member(storage_root, 'alias.txt')

        assert member == storage_root / 'alias.txt'
