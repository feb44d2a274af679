"""Error types raised by the backup pipeline."""


class BackupError(Exception):
    """Base class for every fatal backup failure."""


class ArchiveError(BackupError):
    """Walking the source tree or writing the archive stream failed."""


class SourceNotFoundError(ArchiveError):
    """The source path does not exist or cannot be stat'ed."""


class StagingError(BackupError):
    """The local staging file could not be created or removed."""


class AuthenticationError(BackupError):
    """Google OAuth credentials could not be loaded, refreshed or obtained."""


class RemoteStorageError(BackupError):
    """A Google Drive API call failed or returned inconsistent data."""
