"""Storage configuration models."""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from core.config import DEFAULT_ALLOWED_MIME_TYPES


class StorageType(str, Enum):
    """Storage provider types."""
    S3 = "s3"
    MOCK = "mock"


class StorageConfig(BaseModel):
    """Storage configuration model."""
    model_config = ConfigDict(use_enum_values=True)

    # Common settings
    type: StorageType = StorageType.MOCK
    bucket: Optional[str] = None
    region: Optional[str] = "us-east-1"
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None  # Public/CDN domain

    # S3 specific
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_acl: Optional[str] = "public-read"  # Access control list

    # Mock specific
    local_base_path: str = "./mock-storage"

    # Upload rules
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )
    max_file_size: int = 5 * 1024 * 1024  # 5MB

    # Advanced settings
    timeout: int = 30
    enable_ssl: bool = True
