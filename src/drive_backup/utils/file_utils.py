"""File utility functions."""

import os

class FileHelper:
    """Helper class for file operations."""

    @staticmethod
    def archive_member_name(file_path: str, source_root: str) -> str:
        """Build the archive member name for a file under the source root.

        The source root prefix is removed, then a single leading separator,
        and the remainder is rewritten with forward slashes so the archive
        extracts relative to wherever it is unpacked.

        Args:
            file_path: Path of the file as produced by the walk
            source_root: Source root exactly as passed to the walk

        Returns:
            POSIX-style relative member name
        """
        name = file_path
        if source_root and name.startswith(source_root):
            name = name[len(source_root):]
        if name.startswith(os.sep):
            name = name[len(os.sep):]
        elif os.altsep and name.startswith(os.altsep):
            name = name[len(os.altsep):]

        if os.sep != '/':
            name = name.replace(os.sep, '/')

        # Source root was itself a regular file
        if not name:
            name = os.path.basename(file_path)

        return name

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"
