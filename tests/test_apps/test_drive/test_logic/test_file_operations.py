"""Tests for listing, fetching and deleting stored files."""

import os
from unittest import mock

import pytest

from server.apps.drive.exceptions import (
    PathTraversalError,
    StorageIOError,
    StoredFileNotFoundError,
)
from server.apps.drive.infrastructure.storage import UserFileStorage
from server.apps.drive.logic.file_operations import (
    delete_file,
    get_stored_file,
    list_files,
    list_user_files,
    purge_storage_root,
)


class TestListFiles:
    """Tests for the file catalog."""

    def test_missing_root_is_empty(self, storage_context, identity):
        """Test listing a root that was never created."""
        assert list_user_files(storage_context, identity) == []

    def test_most_recent_first(self, storage_root, make_file):
        """Test entries are ordered by modification time, newest first."""
        for offset, name in enumerate(['old.txt', 'new.txt', 'middle.txt']):
            path = make_file(storage_root, name, 10)
            mtime = 1_700_000_000 + {0: 0, 1: 200, 2: 100}[offset]
            os.utime(path, (mtime, mtime))

        entries = list_files(storage_root)

        assert [entry.name for entry in entries] == [
            'new.txt',
            'middle.txt',
            'old.txt',
        ]

    def test_entry_fields(self, storage_root, make_file):
        """Test size, formatted size and download URL of an entry."""
        make_file(storage_root, 'report.pdf', 1536)

        entry = list_files(storage_root)[0]

        assert entry.name == 'report.pdf'
        assert entry.size_bytes == 1536
        assert entry.size_formatted == '1.50 KB'
        assert entry.download_url == '/download/report.pdf'
        assert entry.modified_at.tzinfo is not None

    def test_directories_are_not_listed(self, storage_root, make_file):
        """Test only regular files appear in the catalog."""
        make_file(storage_root, 'a.txt', 1)
        (storage_root / 'nested').mkdir()

        assert [entry.name for entry in list_files(storage_root)] == ['a.txt']

    def test_roots_are_isolated(self, storage_context, identity, make_file):
        """Test one identity never sees another identity's files."""
        make_file(storage_context.base_dir / 'bob', 'secret.txt', 5)

        assert list_user_files(storage_context, identity) == []


class TestGetStoredFile:
    """Tests for download lookup."""

    def test_existing_file(self, storage_context, identity, storage_root, make_file):
        """Test existing file resolves inside the root."""
        path = make_file(storage_root, 'a.txt', 3)

        assert get_stored_file(storage_context, identity, 'a.txt') == path

    def test_missing_file(self, storage_context, identity, storage_root):
        """Test missing file raises StoredFileNotFoundError."""
        with pytest.raises(StoredFileNotFoundError):
            get_stored_file(storage_context, identity, 'missing.txt')

    def test_directory_is_not_a_file(self, storage_context, identity, storage_root):
        """Test directories cannot be downloaded."""
        (storage_root / 'nested').mkdir()

        with pytest.raises(StoredFileNotFoundError):
            get_stored_file(storage_context, identity, 'nested')

    def test_traversal(self, storage_context, identity, storage_root, make_file):
        """Test another root's file cannot be reached by traversal."""
        make_file(storage_context.base_dir / 'bob', 'secret.txt', 5)

        with pytest.raises(PathTraversalError):
            get_stored_file(storage_context, identity, '../bob/secret.txt')


class TestDeleteFile:
    """Tests for file deletion."""

    def test_delete(self, storage_context, identity, storage_root, make_file):
        """Test deleted file is gone from disk and catalog."""
        make_file(storage_root, 'a.txt', 3)
        make_file(storage_root, 'b.txt', 3)

        delete_file(storage_context, identity, 'a.txt')

        assert not (storage_root / 'a.txt').exists()
        names = [entry.name for entry in list_files(storage_root)]
        assert names == ['b.txt']

    def test_delete_missing(self, storage_context, identity, storage_root):
        """Test deleting a missing file raises StoredFileNotFoundError."""
        with pytest.raises(StoredFileNotFoundError):
            delete_file(storage_context, identity, 'missing.txt')

    def test_delete_traversal(self, storage_context, identity, storage_root, make_file):
        """Test traversal names never delete anything."""
        victim = make_file(storage_context.base_dir / 'bob', 'secret.txt', 5)

        with pytest.raises(PathTraversalError):
            delete_file(storage_context, identity, '../bob/secret.txt')

        assert victim.exists()

    def test_delete_failure(self, storage_context, identity, storage_root, make_file):
        """Test I/O errors surface as StorageIOError without paths."""
        make_file(storage_root, 'a.txt', 3)

        with mock.patch.object(
            UserFileStorage,
            'delete',
            side_effect=PermissionError('denied'),
        ):
            with pytest.raises(StorageIOError) as exc_info:
                delete_file(storage_context, identity, 'a.txt')

        assert str(storage_root) not in str(exc_info.value)
        assert (storage_root / 'a.txt').exists()


class TestPurgeStorageRoot:
    """Tests for removing a whole storage root."""

    def test_purge(self, storage_context, identity, storage_root, make_file):
        """Test root and its files are removed."""
        make_file(storage_root, 'a.txt', 3)

        assert purge_storage_root(storage_context, identity) is True
        assert not storage_root.exists()

    def test_purge_missing_root(self, storage_context, identity):
        """Test purging a root that never existed succeeds."""
        assert purge_storage_root(storage_context, identity) is True

    def test_purge_failure_is_logged(
        self,
        storage_context,
        identity,
        storage_root,
    ):
        """Test failures are reported, not raised."""
        with (
            mock.patch(
                'server.apps.drive.logic.file_operations.shutil.rmtree',
                side_effect=PermissionError('denied'),
            ),
            mock.patch(
                'server.apps.drive.logic.file_operations.logger',
            ) as logger,
        ):
            assert purge_storage_root(storage_context, identity) is False

        assert storage_root.exists()
        logger.exception.assert_called_once()
