"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables prefixed with
CONTENT_ARCHIVER_ (or a .env file). Using Pydantic's BaseSettings means
a missing bucket, secret or malformed public URL stops the process at
startup instead of surfacing on the first request.

Mock mode enables local development without an object store.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.archive.errors import LocationError
from ..core.archive.location import parse_public_url


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via CONTENT_ARCHIVER_<NAME>.
    """

    # API Configuration
    api_title: str = "Content Archiver"
    api_version: str = "v1"

    # Archive target
    bucket_name: str = Field(
        min_length=1,
        description="Bucket every archived object is written to"
    )
    bearer_token: str = Field(
        min_length=1,
        description="Shared secret callers present as 'Authorization: Bearer <token>'"
    )
    public_url: str = Field(
        description="Public base URL objects are served from, e.g. https://objects.example.com"
    )

    # Object store
    endpoint: Optional[str] = Field(
        default=None,
        description="S3-compatible endpoint URL. Required unless store_mock_mode is set."
    )
    access_key_id: Optional[str] = Field(
        default=None,
        description="Object store access key. Falls back to the boto3 credential chain."
    )
    secret_access_key: Optional[str] = Field(
        default=None,
        description="Object store secret key"
    )
    region: str = Field(
        default="us-east-1",
        description="Region name used for request signing"
    )
    store_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory store instead of a real bucket. Local development only."
    )

    # Source fetching
    fetch_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for connecting to and reading from a source"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="CONTENT_ARCHIVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("public_url")
    @classmethod
    def _check_public_url(cls, value: str) -> str:
        try:
            parse_public_url(value)
        except LocationError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def _check_store(self) -> "Settings":
        if not self.store_mock_mode and not self.endpoint:
            raise ValueError("endpoint is required unless store_mock_mode is set")
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are read once per process and never change afterwards.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
