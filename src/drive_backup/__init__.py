"""
Google Drive Backup Application

Archives a local directory into a compressed tarball and uploads it to
Google Drive.
"""

__version__ = "1.0.0"
__author__ = "Drive Backup Tool"
__description__ = "Archive a directory and back it up to Google Drive"

from .config.settings import BackupConfig, CredentialsConfig
from .sync.backup_manager import BackupManager

__all__ = ["BackupConfig", "CredentialsConfig", "BackupManager"]
