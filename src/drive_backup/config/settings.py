"""Configuration settings and models for the backup application."""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

ARCHIVE_MIME_TYPE = "application/gzip"
DRIVE_ROOT_FOLDER_ID = "root"


class UploadOptions(BaseModel):
    """Upload behaviour options."""
    chunk_size: int = 8 * 1024 * 1024  # 8MB
    resumable: bool = True
    verify_upload: bool = True

    @field_validator('chunk_size')
    @classmethod
    def validate_chunk_size(cls, v):
        # Drive resumable uploads require multiples of 256 KiB
        if v <= 0 or v % (256 * 1024) != 0:
            raise ValueError('chunk_size must be a positive multiple of 262144')
        return v


class LoggingOptions(BaseModel):
    """Logging options."""
    level: str = "INFO"
    file: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'unknown log level: {v}')
        return v.upper()


class BackupConfig(BaseModel):
    """Main configuration, built once at startup and passed down explicitly."""
    source: str = "."
    destination: str = "/backup"
    tag: str = ""
    staging_dir: str = "."
    root_folder_id: str = DRIVE_ROOT_FOLDER_ID
    mime_type: str = ARCHIVE_MIME_TYPE
    keep_archive: bool = False
    upload: UploadOptions = Field(default_factory=UploadOptions)
    logging: LoggingOptions = Field(default_factory=LoggingOptions)

    @field_validator('destination')
    @classmethod
    def validate_destination(cls, v):
        if not [part for part in v.split('/') if part]:
            raise ValueError('destination must name at least one folder')
        return v

    @field_validator('tag')
    @classmethod
    def validate_tag(cls, v):
        if '/' in v or os.sep in v:
            raise ValueError('tag must not contain path separators')
        return v

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "BackupConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def to_yaml(self, config_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.model_dump(exclude_none=True), f, default_flow_style=False, indent=2)

    def with_overrides(self, **overrides: Any) -> "BackupConfig":
        """Return a validated copy with every non-None override applied."""
        data: Dict[str, Any] = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return type(self)(**data)


class CredentialsConfig(BaseModel):
    """Credentials configuration (stored separately for security)."""
    credentials_file: str = "credentials.json"
    token_file: str = "token.json"
    api_key: Optional[str] = None
    open_browser: bool = True

    @classmethod
    def from_env(cls) -> "CredentialsConfig":
        """Load credentials from environment variables, keeping defaults for unset ones."""
        env = {
            'credentials_file': os.getenv('DRIVE_BACKUP_CREDENTIALS_FILE'),
            'token_file': os.getenv('DRIVE_BACKUP_TOKEN_FILE'),
            'api_key': os.getenv('DRIVE_BACKUP_API_KEY'),
        }
        return cls(**{k: v for k, v in env.items() if v})

    def with_overrides(self, **overrides: Any) -> "CredentialsConfig":
        """Return a copy with every non-None override applied."""
        data: Dict[str, Any] = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return type(self)(**data)
