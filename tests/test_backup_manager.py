"""End-to-end tests for the backup manager with an in-memory remote store."""

import hashlib
import os

import pytest
from google.auth.exceptions import TransportError

from conftest import read_archive
from drive_backup.config.settings import BackupConfig, CredentialsConfig
from drive_backup.exceptions import (
    AuthenticationError,
    RemoteStorageError,
    SourceNotFoundError,
)
from drive_backup.sync.backup_manager import BackupManager


class FakeRemoteStore:
    """Records folders and uploaded files in memory."""

    def __init__(self, checksum=True, corrupt=False):
        self.folders = {}
        self.files = {}
        self.checksum = checksum
        self.corrupt = corrupt

    def create_folder(self, name, parent_id):
        folder_id = f"folder-{len(self.folders) + 1}"
        self.folders[folder_id] = (name, parent_id)
        return folder_id

    def ensure_folder(self, path, root_id="root"):
        parent_id = root_id
        for part in [p for p in path.split("/") if p]:
            parent_id = self.create_folder(part, parent_id)
        return parent_id

    def create_file(self, name, mime_type, stream, parent_id):
        data = stream.read()
        file_id = f"file-{len(self.files) + 1}"
        self.files[file_id] = {"name": name, "mime_type": mime_type, "parent": parent_id, "data": data}
        result = {"id": file_id, "name": name}
        if self.checksum:
            result["md5Checksum"] = hashlib.md5(data + (b"!" if self.corrupt else b"")).hexdigest()
        return result

    def test_connection(self):
        return True


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


def _manager(source, staging_dir, remote, **config):
    backup_config = BackupConfig(source=str(source), staging_dir=str(staging_dir), **config)
    return BackupManager(backup_config, CredentialsConfig(), client_factory=lambda cfg, creds: remote)


def test_run_uploads_archive_and_removes_staged_file(source_tree, staging_dir):
    remote = FakeRemoteStore()

    result = _manager(source_tree, staging_dir, remote, tag="nightly").run()

    assert result["status"] == "completed"
    assert result["verified"] is True
    assert result["archive_removed"] is True
    assert not os.path.exists(result["archive_path"])
    assert os.path.basename(result["archive_path"]).startswith("tmp_nightly")

    uploaded = remote.files[result["file_id"]]
    assert uploaded["name"] == os.path.basename(result["archive_path"])
    assert uploaded["mime_type"] == "application/gzip"
    assert uploaded["parent"] == result["folder_id"]
    assert hashlib.md5(uploaded["data"]).hexdigest() == result["md5"]
    assert read_archive(uploaded["data"]) == {"a.txt": "hello", "sub/b.txt": "world"}


def test_destination_path_is_created_under_root(source_tree, staging_dir):
    remote = FakeRemoteStore()

    result = _manager(source_tree, staging_dir, remote, destination="/backup/daily").run()

    assert remote.folders == {
        "folder-1": ("backup", "root"),
        "folder-2": ("daily", "folder-1"),
    }
    assert result["folder_id"] == "folder-2"


def test_keep_archive_retains_staged_file(source_tree, staging_dir):
    result = _manager(source_tree, staging_dir, FakeRemoteStore(), keep_archive=True).run()

    assert result["archive_removed"] is False
    assert os.path.exists(result["archive_path"])


def test_checksum_mismatch_fails_and_keeps_archive(source_tree, staging_dir):
    with pytest.raises(RemoteStorageError, match="Checksum mismatch"):
        _manager(source_tree, staging_dir, FakeRemoteStore(corrupt=True)).run()

    assert len(list(staging_dir.iterdir())) == 1


def test_missing_remote_checksum_is_not_verified(source_tree, staging_dir):
    result = _manager(source_tree, staging_dir, FakeRemoteStore(checksum=False)).run()

    assert result["verified"] is False
    assert result["status"] == "completed"
    assert result["archive_removed"] is False
    assert os.path.exists(result["archive_path"])


def test_verification_can_be_disabled(source_tree, staging_dir):
    result = _manager(
        source_tree, staging_dir, FakeRemoteStore(corrupt=True),
        upload={"verify_upload": False},
    ).run()

    assert result["verified"] is False
    assert result["archive_removed"] is False
    assert os.path.exists(result["archive_path"])


def test_authorization_failure_keeps_archive(source_tree, staging_dir):
    def failing_factory(config, credentials):
        raise AuthenticationError("no token")

    backup_config = BackupConfig(source=str(source_tree), staging_dir=str(staging_dir))
    manager = BackupManager(backup_config, client_factory=failing_factory)

    with pytest.raises(AuthenticationError):
        manager.run()

    assert len(list(staging_dir.iterdir())) == 1


def test_missing_source_stops_before_remote(tmp_path, staging_dir):
    calls = []

    def factory(config, credentials):
        calls.append(config)
        return FakeRemoteStore()

    backup_config = BackupConfig(source=str(tmp_path / "missing"), staging_dir=str(staging_dir))

    with pytest.raises(SourceNotFoundError):
        BackupManager(backup_config, client_factory=factory).run()

    assert calls == []
    assert list(staging_dir.iterdir()) == []


def test_remote_store_is_acquired_once(source_tree, staging_dir):
    calls = []

    def factory(config, credentials):
        calls.append(1)
        return FakeRemoteStore()

    backup_config = BackupConfig(source=str(source_tree), staging_dir=str(staging_dir))
    manager = BackupManager(backup_config, client_factory=factory)
    manager.run()
    manager.run()

    assert calls == [1]


def test_test_connections(source_tree, staging_dir):
    assert _manager(source_tree, staging_dir, FakeRemoteStore()).test_connections() == {
        "Authorization": True,
        "Google Drive": True,
    }

    def failing_factory(config, credentials):
        raise AuthenticationError("nope")

    manager = BackupManager(BackupConfig(), client_factory=failing_factory)
    assert manager.test_connections() == {"Authorization": False, "Google Drive": False}


def test_test_connections_reports_unexpected_errors_as_failures(source_tree, staging_dir):
    def offline_factory(config, credentials):
        raise TransportError("network unreachable during token refresh")

    manager = BackupManager(BackupConfig(), client_factory=offline_factory)
    assert manager.test_connections() == {"Authorization": False, "Google Drive": False}

    class OfflineStore(FakeRemoteStore):
        def test_connection(self):
            raise ConnectionError("offline")

    assert _manager(source_tree, staging_dir, OfflineStore()).test_connections() == {
        "Authorization": True,
        "Google Drive": False,
    }
