"""
Configuration management using pydantic-settings.
Loads settings from environment variables and .env file.
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# S3 rejects multipart parts smaller than 5 MiB (except the last one)
MIN_PART_SIZE = 5 * 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging Settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")

    # S3 Object Storage Settings
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="S3-compatible endpoint URL (leave empty for AWS S3)"
    )
    s3_region: str = Field(default="us-east-1", description="S3 region")
    s3_access_key: Optional[str] = Field(default=None, description="S3 access key (boto3 resolution when empty)")
    s3_secret_key: Optional[str] = Field(default=None, description="S3 secret key (boto3 resolution when empty)")
    s3_use_ssl: bool = Field(default=True, description="Use SSL for S3 connections")
    s3_connect_timeout: int = Field(default=30, description="Connection timeout in seconds")
    s3_read_timeout: int = Field(default=60, description="Read timeout in seconds")
    s3_max_attempts: int = Field(default=3, description="Max attempts per S3 request (botocore retries)")

    # Upload Settings
    upload_part_size: int = Field(
        default=MIN_PART_SIZE,
        description="Multipart chunk size in bytes when no partSize option is configured"
    )
    upload_queue_size: int = Field(default=4, description="Maximum multipart parts in flight per upload")
    stream_chunk_size: int = Field(
        default=64 * 1024,
        description="Chunk size in bytes used when reading file objects as streams"
    )

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is a known renderer."""
        if v.lower() not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    @field_validator("upload_part_size")
    @classmethod
    def validate_upload_part_size(cls, v: int) -> int:
        """Validate part size honours the S3 multipart minimum."""
        if v < MIN_PART_SIZE:
            raise ValueError(f"UPLOAD_PART_SIZE must be at least {MIN_PART_SIZE} bytes")
        return v

    @field_validator("upload_queue_size", "stream_chunk_size", "s3_max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counters and sizes are positive."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v


# Singleton settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the singleton settings instance.

    Returns:
        Settings instance loaded from environment
    """
    return settings
