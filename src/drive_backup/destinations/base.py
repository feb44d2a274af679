"""Interface the backup manager needs from a remote store."""

from typing import Any, BinaryIO, Dict, Protocol


class RemoteStore(Protocol):
    """Remote object store with folder and file creation."""

    def create_folder(self, name: str, parent_id: str) -> str:
        ...

    def create_file(self, name: str, mime_type: str, stream: BinaryIO, parent_id: str) -> Dict[str, Any]:
        ...

    def ensure_folder(self, path: str, root_id: str = "root") -> str:
        ...
