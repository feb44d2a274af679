"""Local staging of the backup archive."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Callable, Sequence

from ..exceptions import SourceNotFoundError, StagingError
from .tar_writer import HashSink, tar_directory

logger = logging.getLogger(__name__)

STAGED_PREFIX = "tmp_"
STAGED_SUFFIX = ".tar.gz"
TIMESTAMP_FORMAT = "%d-%m-%Y_%H:%M:%S"


@dataclass
class StagedArtifact:
    """A fully written archive waiting for upload."""
    path: str
    size: int
    md5: str

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


def staged_filename(tag: str, now: datetime, directory: str = ".") -> str:
    """Build the staged archive path.

    The tag is followed directly by the timestamp, with no separator.
    """
    return f"{directory}/{STAGED_PREFIX}{tag}{now.strftime(TIMESTAMP_FORMAT)}{STAGED_SUFFIX}"


def stage_archive(
    source: str,
    tag: str = "",
    directory: str = ".",
    clock: Callable[[], datetime] = datetime.now,
    extra_sinks: Sequence[BinaryIO] = (),
) -> StagedArtifact:
    """Write the archive of ``source`` to a uniquely named local file.

    Args:
        source: Directory to archive
        tag: Descriptor embedded in the filename (may be empty)
        directory: Directory the staged file is created in
        clock: Source of the timestamp used in the filename
        extra_sinks: Additional sinks that receive the same archive bytes

    Returns:
        The closed staged artifact

    Raises:
        StagingError: If the staging file cannot be created or written
        ArchiveError: If archiving fails; the partial file is left in place
    """
    path = staged_filename(tag, clock(), directory)
    digest = HashSink("md5")

    try:
        # Exclusive create; an existing archive with the same name is never overwritten
        f = open(path, 'xb')
    except OSError as e:
        raise StagingError(f"Could not create file: {path}: {e}") from e

    try:
        with f:
            tar_directory(source, f, digest, *extra_sinks)
            f.flush()
    except SourceNotFoundError:
        # Nothing was written; do not leave an empty archive behind
        os.remove(path)
        raise
    except OSError as e:
        raise StagingError(f"Error writing to file: {path}: {e}") from e

    logger.info(f"Staged archive {path} ({digest.bytes_written} bytes, md5 {digest.hexdigest()})")
    return StagedArtifact(path=path, size=digest.bytes_written, md5=digest.hexdigest())


def remove_staged(artifact: StagedArtifact) -> bool:
    """Delete a staged archive.

    Returns:
        True if a file was removed, False if it was already gone
    """
    try:
        os.remove(artifact.path)
    except FileNotFoundError:
        logger.warning(f"Staged archive already removed: {artifact.path}")
        return False
    except OSError as e:
        raise StagingError(f"Could not remove staged archive {artifact.path}: {e}") from e

    logger.info(f"Removed staged archive {artifact.path}")
    return True
