"""Configuration management for the Drive backup application."""

from .settings import BackupConfig, CredentialsConfig, LoggingOptions, UploadOptions

__all__ = ["BackupConfig", "CredentialsConfig", "LoggingOptions", "UploadOptions"]
