"""Streaming directory archiver.

The source tree is walked depth-first and every regular file is framed as a
tar member, gzip-compressed, and written to one or more sinks through a
single fan-out writer. Nothing is buffered beyond the copy buffer, so memory
use does not grow with the size of the tree.
"""

import gzip
import hashlib
import logging
import os
import stat
import tarfile
from contextlib import closing
from typing import BinaryIO, Iterator, Tuple

from ..exceptions import ArchiveError, SourceNotFoundError
from ..utils.file_utils import FileHelper

logger = logging.getLogger(__name__)


class MultiWriter:
    """Write-only file-like object that duplicates every write to all sinks.

    Sinks receive writes in the order they were given. The first sink that
    raises aborts the write; later sinks do not see that chunk.
    """

    def __init__(self, *writers):
        if not writers:
            raise ValueError("at least one writer is required")
        self.writers = writers

    def write(self, data) -> int:
        for writer in self.writers:
            writer.write(data)
        return len(data)

    def flush(self) -> None:
        for writer in self.writers:
            flush = getattr(writer, 'flush', None)
            if flush is not None:
                flush()

    def writable(self) -> bool:
        return True


class HashSink:
    """Sink that feeds written bytes into a hashlib digest."""

    def __init__(self, algorithm: str = "md5"):
        self._hash = hashlib.new(algorithm)
        self.bytes_written = 0

    def write(self, data) -> int:
        self._hash.update(data)
        self.bytes_written += len(data)
        return len(data)

    def hexdigest(self) -> str:
        return self._hash.hexdigest()


def _walk(path: str) -> Iterator[Tuple[str, os.stat_result]]:
    """Yield ``(path, lstat)`` depth-first, root first, children sorted.

    Symlinks are reported but never followed. Any ``OSError`` from listing
    or stat'ing propagates to the caller.
    """
    st = os.lstat(path)
    yield path, st
    if stat.S_ISDIR(st.st_mode):
        for name in sorted(os.listdir(path)):
            yield from _walk(os.path.join(path, name))


def tar_directory(src: str, *writers: BinaryIO) -> None:
    """Archive every regular file under ``src`` as a .tar.gz stream.

    Args:
        src: Directory (or single file) to archive
        *writers: One or more binary sinks; all receive identical bytes

    Raises:
        SourceNotFoundError: If ``src`` cannot be stat'ed; nothing is written
        ArchiveError: On any traversal, header, open or copy failure. The
            sinks may hold a truncated stream.
    """
    src = os.fspath(src)

    try:
        os.stat(src)
    except OSError as e:
        raise SourceNotFoundError(f"Unable to tar files - {e}") from e

    sink = MultiWriter(*writers)

    try:
        # tar is closed before gzip, so the end-of-archive blocks land inside
        # the compressed stream and the gzip footer is always the last write.
        with gzip.GzipFile(fileobj=sink, mode='wb') as gz, \
                closing(tarfile.open(fileobj=gz, mode='w|')) as tar:
            for path, st in _walk(src):
                if not stat.S_ISREG(st.st_mode):
                    logger.debug(f"Skipping non-regular entry: {path}")
                    continue

                arcname = FileHelper.archive_member_name(path, src)
                info = tar.gettarinfo(path, arcname=arcname)

                # Closed before the next entry: one source descriptor at a time
                with open(path, 'rb') as f:
                    tar.addfile(info, f)

                logger.debug(f"Archived {arcname} ({info.size} bytes)")
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(f"Failed to archive {src}: {e}") from e
