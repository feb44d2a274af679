"""Backup destinations."""

from .base import RemoteStore
from .google_drive import FOLDER_MIME_TYPE, GoogleDriveDestination, build_drive_service

__all__ = ["RemoteStore", "FOLDER_MIME_TYPE", "GoogleDriveDestination", "build_drive_service"]
