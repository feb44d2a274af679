"""Google OAuth authentication handling."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# If modifying these scopes, delete the cached token file.
DEFAULT_SCOPES = ["https://www.googleapis.com/auth/drive.file"]


class GoogleDriveAuth:
    """Obtain Google Drive credentials, caching the user token on disk."""

    def __init__(
        self,
        credentials_file: Union[str, Path] = "credentials.json",
        token_file: Union[str, Path] = "token.json",
        scopes: Optional[List[str]] = None,
        open_browser: bool = True,
    ):
        """Initialize Google authentication.

        Args:
            credentials_file: OAuth client secrets downloaded from the Cloud console
            token_file: Where the authorized user token is cached between runs
            scopes: OAuth scopes to request
            open_browser: Whether the local-server flow opens a browser itself
        """
        self.credentials_file = Path(credentials_file)
        self.token_file = Path(token_file)
        self.scopes = scopes or list(DEFAULT_SCOPES)
        self.open_browser = open_browser
        self._credentials: Optional[Credentials] = None

    def _load_cached_token(self) -> Optional[Credentials]:
        """Load the cached user token, or None if there is no usable cache."""
        if not self.token_file.exists():
            return None
        try:
            return Credentials.from_authorized_user_file(str(self.token_file), self.scopes)
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring unreadable token cache {self.token_file}: {e}")
            return None

    def _save_token(self, credentials: Credentials) -> None:
        """Persist the token, readable by the owner only."""
        logger.info(f"Saving credential file to: {self.token_file}")
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.token_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, 'w') as f:
                f.write(credentials.to_json())
        except OSError as e:
            raise AuthenticationError(f"Unable to cache oauth token: {e}") from e

    def _run_flow(self) -> Credentials:
        """Run the interactive installed-app authorization flow."""
        if not self.credentials_file.exists():
            raise AuthenticationError(
                f"Unable to read client secrets file: {self.credentials_file}"
            )
        try:
            flow = InstalledAppFlow.from_client_secrets_file(str(self.credentials_file), self.scopes)
            return flow.run_local_server(port=0, open_browser=self.open_browser)
        except (ValueError, GoogleAuthError, OSError) as e:
            raise AuthenticationError(f"Unable to retrieve token from web: {e}") from e

    def get_credentials(self) -> Credentials:
        """Return valid credentials, refreshing or re-authorizing as needed.

        Raises:
            AuthenticationError: If no valid credentials can be obtained
        """
        if self._credentials is not None and self._credentials.valid:
            return self._credentials

        creds = self._credentials or self._load_cached_token()

        if creds and creds.valid:
            self._credentials = creds
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                logger.info("Access token refreshed")
            except GoogleAuthError as e:
                raise AuthenticationError(f"Token refresh failed: {e}") from e
        else:
            logger.info("No cached token, starting authorization flow")
            creds = self._run_flow()

        self._save_token(creds)
        self._credentials = creds
        return creds

    def clear_cache(self) -> None:
        """Delete the cached token so the next run re-authorizes."""
        if self.token_file.exists():
            self.token_file.unlink()
        self._credentials = None

    @classmethod
    def from_credentials_config(cls, creds_config) -> "GoogleDriveAuth":
        """Create authentication from a CredentialsConfig."""
        return cls(
            credentials_file=creds_config.credentials_file,
            token_file=creds_config.token_file,
            open_browser=creds_config.open_browser,
        )
