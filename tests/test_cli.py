"""Tests for the command-line interface."""

import os

import pytest
import yaml
from click.testing import CliRunner
from google.auth.exceptions import TransportError

from drive_backup import cli as cli_module
from drive_backup.cli import cli
from drive_backup.exceptions import AuthenticationError
from drive_backup.sync import backup_manager


@pytest.fixture
def runner():
    return CliRunner()


class FakeManager:
    """Stands in for BackupManager and records the configs it was given."""

    instances = []
    error = None
    connections = {"Authorization": True, "Google Drive": True}

    def __init__(self, config, credentials):
        self.config = config
        self.credentials = credentials
        FakeManager.instances.append(self)

    def run(self):
        if FakeManager.error:
            raise FakeManager.error
        return {
            'status': 'completed',
            'archive_path': './tmp_x.tar.gz',
            'archive_size': 2048,
            'md5': 'd41d8cd98f00b204e9800998ecf8427e',
            'folder_id': 'folder-1',
            'file_id': 'file-1',
            'remote_name': 'tmp_x.tar.gz',
            'verified': True,
            'archive_removed': True,
            'duration': 1.5,
            'errors': [],
        }

    def test_connections(self):
        return dict(FakeManager.connections)


@pytest.fixture
def fake_manager(monkeypatch):
    FakeManager.instances = []
    FakeManager.error = None
    FakeManager.connections = {"Authorization": True, "Google Drive": True}
    monkeypatch.setattr(cli_module, "BackupManager", FakeManager)
    return FakeManager


def test_backup_passes_flags_to_manager(runner, fake_manager, tmp_path):
    result = runner.invoke(cli, [
        "backup", "--src", str(tmp_path), "--dest", "/backup/photos", "--tag", "nightly",
        "--key", "KEY", "--token", "tok.json", "--keep-archive",
    ])

    assert result.exit_code == 0, result.output
    assert "Google drive backup utility." in result.output
    assert "file-1" in result.output

    manager = fake_manager.instances[0]
    assert manager.config.source == str(tmp_path)
    assert manager.config.destination == "/backup/photos"
    assert manager.config.tag == "nightly"
    assert manager.config.keep_archive is True
    assert manager.credentials.api_key == "KEY"
    assert manager.credentials.token_file == "tok.json"


def test_backup_flags_override_yaml(runner, fake_manager, tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"source": "/from/yaml", "tag": "yaml", "destination": "/y"}))

    result = runner.invoke(cli, ["backup", "-c", str(config_path), "-t", "flag"])

    assert result.exit_code == 0, result.output
    manager = fake_manager.instances[0]
    assert manager.config.source == "/from/yaml"
    assert manager.config.destination == "/y"
    assert manager.config.tag == "flag"


def test_backup_failure_exits_with_status_2(runner, fake_manager):
    fake_manager.error = AuthenticationError("Unable to read client secrets file")

    result = runner.invoke(cli, ["backup", "--src", "."])

    assert result.exit_code == 2
    assert "Error!" in result.output
    assert "Unable to read client secrets file" in result.output
    assert "--src" in result.output


def test_backup_invalid_config_exits_with_status_2(runner, fake_manager):
    result = runner.invoke(cli, ["backup", "--dest", "/"])

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output
    assert fake_manager.instances == []


def test_backup_missing_source_end_to_end(runner, tmp_path):
    result = runner.invoke(cli, [
        "backup", "--src", str(tmp_path / "missing"), "--staging-dir", str(tmp_path),
    ])

    assert result.exit_code == 2
    assert "Unable to tar files" in result.output
    assert os.listdir(tmp_path) == []


def test_archive_command_stages_locally(runner, source_tree, tmp_path):
    staging = tmp_path / "out"
    staging.mkdir()

    result = runner.invoke(cli, [
        "archive", "--src", str(source_tree), "--tag", "local", "--staging-dir", str(staging),
    ])

    assert result.exit_code == 0, result.output
    staged = os.listdir(staging)
    assert len(staged) == 1
    assert staged[0].startswith("tmp_local")
    assert staged[0].endswith(".tar.gz")
    assert "Backup Archive" in result.output


def test_test_command_reports_failure(runner, fake_manager):
    fake_manager.connections = {"Authorization": False, "Google Drive": False}

    result = runner.invoke(cli, ["test"])

    assert result.exit_code == 2
    assert "Some connections failed" in result.output


def test_test_command_success(runner, fake_manager):
    result = runner.invoke(cli, ["test", "--credentials", "c.json"])

    assert result.exit_code == 0, result.output
    assert fake_manager.instances[0].credentials.credentials_file == "c.json"


def test_init_writes_sample_config(runner, tmp_path):
    config_path = tmp_path / "config" / "config.yaml"

    result = runner.invoke(cli, ["init", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    data = yaml.safe_load(config_path.read_text())
    assert data["destination"] == "/backup"
    assert data["tag"] == "nightly"


def test_init_keeps_existing_config_when_declined(runner, tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("source: /keep\n")

    result = runner.invoke(cli, ["init", "--config", str(config_path)], input="n\n")

    assert result.exit_code == 0
    assert config_path.read_text() == "source: /keep\n"


def test_test_command_offline_exits_with_status_2(runner, monkeypatch):
    def offline_client(config, credentials):
        raise TransportError("network unreachable during token refresh")

    monkeypatch.setattr(backup_manager, "google_drive_client", offline_client)

    result = runner.invoke(cli, ["test"])

    assert result.exit_code == 2
    assert "Some connections failed" in result.output


def test_test_command_unexpected_error_exits_with_status_2(runner, fake_manager, monkeypatch):
    def broken(self):
        raise ConnectionError("offline")

    monkeypatch.setattr(FakeManager, "test_connections", broken)

    result = runner.invoke(cli, ["test"])

    assert result.exit_code == 2
    assert "Connection test failed" in result.output
    assert "offline" in result.output


def test_init_unwritable_location_exits_with_status_2(runner, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    result = runner.invoke(cli, ["init", "--config", str(blocker / "config.yaml")])

    assert result.exit_code == 2
    assert "Could not write configuration file" in result.output
