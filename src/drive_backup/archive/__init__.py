"""Archive creation and local staging."""

from .tar_writer import HashSink, MultiWriter, tar_directory
from .staging import StagedArtifact, remove_staged, stage_archive, staged_filename

__all__ = [
    "HashSink",
    "MultiWriter",
    "tar_directory",
    "StagedArtifact",
    "remove_staged",
    "stage_archive",
    "staged_filename",
]
