"""Main backup manager orchestrating the backup process."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..archive.staging import StagedArtifact, remove_staged, stage_archive
from ..auth.google_auth import GoogleDriveAuth
from ..config.settings import BackupConfig, CredentialsConfig
from ..destinations.base import RemoteStore
from ..destinations.google_drive import GoogleDriveDestination, build_drive_service
from ..exceptions import BackupError, RemoteStorageError, StagingError
from ..utils.logging import ContextualLogger, TimedOperation

# Module logger
logger = logging.getLogger(__name__)

ClientFactory = Callable[[BackupConfig, CredentialsConfig], RemoteStore]


def google_drive_client(config: BackupConfig, credentials: CredentialsConfig) -> GoogleDriveDestination:
    """Produce an authenticated Drive destination or fail."""
    auth = GoogleDriveAuth.from_credentials_config(credentials)
    service = build_drive_service(auth.get_credentials(), api_key=credentials.api_key)
    return GoogleDriveDestination(
        service,
        chunk_size=config.upload.chunk_size,
        resumable=config.upload.resumable,
    )


class BackupManager:
    """Runs one backup: stage, upload, verify, clean up."""

    def __init__(
        self,
        config: BackupConfig,
        credentials: Optional[CredentialsConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """Initialize backup manager.

        Args:
            config: Backup configuration
            credentials: Credentials configuration
            client_factory: Callable producing the remote store; defaults to Google Drive
        """
        self.config = config
        self.credentials = credentials or CredentialsConfig()
        self.client_factory = client_factory or google_drive_client
        self._remote: Optional[RemoteStore] = None
        self.log = ContextualLogger(logger, {"source": config.source, "tag": config.tag or "-"})

    def get_remote_store(self) -> RemoteStore:
        """Acquire the remote store once per manager."""
        if self._remote is None:
            self._remote = self.client_factory(self.config, self.credentials)
        return self._remote

    def stage(self) -> StagedArtifact:
        """Write the archive to the staging directory."""
        with TimedOperation(self.log, "archive staging"):
            return stage_archive(
                self.config.source,
                tag=self.config.tag,
                directory=self.config.staging_dir,
            )

    def upload(self, artifact: StagedArtifact) -> Dict[str, Any]:
        """Upload a staged archive into the configured destination folder.

        Returns:
            Dict with ``folder_id`` and the uploaded file metadata under ``file``
        """
        try:
            stream = open(artifact.path, 'rb')
        except OSError as e:
            raise StagingError(f"Cannot open backup archive {artifact.path}: {e}") from e

        with stream:
            remote = self.get_remote_store()
            folder_id = remote.ensure_folder(self.config.destination, self.config.root_folder_id)

            with TimedOperation(self.log, f"upload of {artifact.name}"):
                uploaded = remote.create_file(artifact.name, self.config.mime_type, stream, folder_id)

        return {"folder_id": folder_id, "file": uploaded}

    def verify(self, artifact: StagedArtifact, uploaded: Dict[str, Any]) -> bool:
        """Compare the remote checksum with the local one.

        Returns:
            True if verified, False if the remote did not report a checksum

        Raises:
            RemoteStorageError: If the checksums differ
        """
        remote_md5 = uploaded.get("md5Checksum")
        if not remote_md5:
            self.log.warning(f"Remote did not report a checksum for {artifact.name}; skipping verification")
            return False
        if remote_md5 != artifact.md5:
            raise RemoteStorageError(
                f"Checksum mismatch for {artifact.name}: local {artifact.md5}, remote {remote_md5}"
            )
        self.log.info(f"Verified {artifact.name} (md5 {remote_md5})")
        return True

    def run(self) -> Dict[str, Any]:
        """Run the full backup.

        Returns:
            Backup result dictionary

        Raises:
            BackupError: On any failure; remote folders already created are kept
        """
        start_time = datetime.now()
        self.log.info(f"Starting backup to {self.config.destination}")

        artifact = self.stage()

        try:
            upload_result = self.upload(artifact)
            uploaded = upload_result["file"]
            verified = False
            if self.config.upload.verify_upload:
                verified = self.verify(artifact, uploaded)
        except BackupError:
            self.log.error(f"Backup failed; staged archive kept at {artifact.path}")
            raise

        removed = False
        if verified and not self.config.keep_archive:
            removed = remove_staged(artifact)
        elif not verified:
            self.log.info(f"Upload not verified; staged archive kept at {artifact.path}")

        duration = (datetime.now() - start_time).total_seconds()
        self.log.info(f"Backup completed in {duration:.1f}s")

        return {
            'status': 'completed',
            'archive_path': artifact.path,
            'archive_size': artifact.size,
            'md5': artifact.md5,
            'folder_id': upload_result["folder_id"],
            'file_id': uploaded.get("id"),
            'remote_name': uploaded.get("name", artifact.name),
            'verified': verified,
            'archive_removed': removed,
            'duration': duration,
            'errors': [],
        }

    def test_connections(self) -> Dict[str, bool]:
        """Test authorization and Drive reachability."""
        results = {}
        try:
            remote = self.get_remote_store()
            results['Authorization'] = True
        except Exception as e:
            logger.error(f"Authorization failed: {e}")
            return {'Authorization': False, 'Google Drive': False}

        test = getattr(remote, 'test_connection', None)
        try:
            results['Google Drive'] = bool(test()) if test else True
        except Exception as e:
            logger.error(f"Google Drive connection failed: {e}")
            results['Google Drive'] = False
        return results
