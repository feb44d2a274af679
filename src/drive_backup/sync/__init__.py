"""Backup orchestration."""

from .backup_manager import BackupManager, google_drive_client

__all__ = ["BackupManager", "google_drive_client"]
