"""Google Drive destination handler with streaming upload."""

import logging
from typing import Any, BinaryIO, Dict, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from ..exceptions import RemoteStorageError

logger = logging.getLogger(__name__)

# Folders in Google Drive have a special MIME type
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id, name, parents, mimeType, size, md5Checksum"


def build_drive_service(credentials, api_key: Optional[str] = None):
    """Build an authenticated Drive v3 service.

    Args:
        credentials: google-auth credentials
        api_key: Optional API key sent along for quota attribution
    """
    try:
        return build(
            "drive",
            "v3",
            credentials=credentials,
            developerKey=api_key,
            cache_discovery=False,
        )
    except HttpError as e:
        raise RemoteStorageError(f"Cannot create the Google Drive service: {e}") from e


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveDestination:
    """Google Drive destination supporting folder creation and file upload."""

    def __init__(self, service, chunk_size: int = 8 * 1024 * 1024, resumable: bool = True):
        """Initialize Google Drive destination.

        Args:
            service: Drive v3 service from ``build_drive_service``
            chunk_size: Upload chunk size for resumable uploads
            resumable: Whether to use resumable uploads
        """
        self.service = service
        self.chunk_size = chunk_size
        self.resumable = resumable

    def create_folder(self, name: str, parent_id: str) -> str:
        """Create a folder and return its id."""
        metadata = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id],
        }
        try:
            folder = self.service.files().create(body=metadata, fields="id").execute()
        except HttpError as e:
            raise RemoteStorageError(f"Could not create dir '{name}': {e}") from e

        logger.info(f"Created folder '{name}' ({folder['id']}) under {parent_id}")
        return folder["id"]

    def create_file(self, name: str, mime_type: str, stream: BinaryIO, parent_id: str) -> Dict[str, Any]:
        """Upload ``stream`` as a new file inside ``parent_id``.

        Returns:
            Drive file metadata (id, name, size, md5Checksum, ...)
        """
        metadata = {
            "name": name,
            "mimeType": mime_type,
            "parents": [parent_id],
        }
        media = MediaIoBaseUpload(
            stream,
            mimetype=mime_type,
            chunksize=self.chunk_size,
            resumable=self.resumable,
        )
        try:
            request = self.service.files().create(body=metadata, media_body=media, fields=FILE_FIELDS)
            if not self.resumable:
                uploaded = request.execute()
            else:
                uploaded = None
                while uploaded is None:
                    status, uploaded = request.next_chunk()
                    if status:
                        logger.debug(f"Uploaded {int(status.progress() * 100)}% of {name}")
        except HttpError as e:
            raise RemoteStorageError(f"Could not create file '{name}': {e}") from e

        logger.info(f"Uploaded '{name}' as {uploaded['id']}")
        return uploaded

    def find_folder(self, name: str, parent_id: str) -> Optional[str]:
        """Return the id of a non-trashed folder named ``name`` in ``parent_id``."""
        query = (
            f"name = '{_escape_query(name)}' and mimeType = '{FOLDER_MIME_TYPE}' "
            f"and '{_escape_query(parent_id)}' in parents and trashed = false"
        )
        try:
            response = self.service.files().list(
                q=query,
                spaces="drive",
                fields="files(id, name)",
                pageSize=1,
            ).execute()
        except HttpError as e:
            raise RemoteStorageError(f"Could not look up folder '{name}': {e}") from e

        files = response.get("files", [])
        return files[0]["id"] if files else None

    def ensure_folder(self, path: str, root_id: str = "root") -> str:
        """Resolve a slash-separated folder path, creating missing folders.

        Returns:
            Id of the innermost folder
        """
        parent_id = root_id
        for part in [p for p in path.split("/") if p]:
            folder_id = self.find_folder(part, parent_id)
            if folder_id is None:
                folder_id = self.create_folder(part, parent_id)
            else:
                logger.debug(f"Reusing folder '{part}' ({folder_id})")
            parent_id = folder_id
        return parent_id

    def test_connection(self) -> bool:
        """Test connection to Google Drive.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            about = self.service.about().get(fields="user(emailAddress)").execute()
        except HttpError as e:
            logger.error(f"Failed to connect to Google Drive: {e}")
            return False

        logger.info(f"Connected to Google Drive as {about.get('user', {}).get('emailAddress')}")
        return True
