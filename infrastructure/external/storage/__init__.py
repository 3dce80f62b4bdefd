"""Storage service entry point and lifecycle management."""
from typing import Optional

from core.config import settings
from core.logging_config import get_logger
from .base import PHOTO_PREFIX, PhotoStorage
from .config import StorageConfig, StorageType
from .factory import create_provider
from .utils import LoggingMiddleware, apply_middleware

logger = get_logger(__name__)

# Global storage client instance
_storage_client: Optional[PhotoStorage] = None


def get_storage_config() -> StorageConfig:
    """Get storage configuration from settings.

    Assembles StorageConfig from core.config.settings to maintain
    single source of truth for configuration.

    Returns:
        Storage configuration instance
    """
    s = settings.storage
    public_base_url = s.public_base_url
    if s.use_mock and not public_base_url:
        public_base_url = f"http://localhost:{settings.PORT}/mock-storage"

    return StorageConfig(
        type=StorageType.MOCK if s.use_mock else StorageType.S3,
        bucket=s.bucket,
        region=s.region,
        endpoint=s.endpoint,
        public_base_url=public_base_url,
        aws_access_key_id=s.aws_access_key_id,
        aws_secret_access_key=s.aws_secret_access_key,
        s3_acl=s.s3_acl,
        local_base_path=s.local_base_path,
        allowed_mime_types=s.allowed_mime_types,
        max_file_size=s.max_file_size,
        timeout=s.timeout,
        enable_ssl=s.enable_ssl,
    )


async def init_storage_client(config: Optional[StorageConfig] = None) -> PhotoStorage:
    """Initialize storage client.

    Creates the provider selected by ``config`` (defaults to the
    application settings) exactly once per process.
    """
    global _storage_client

    if _storage_client is not None:
        logger.warning("Storage client already initialized")
        return _storage_client

    config = config or get_storage_config()
    provider = await create_provider(config)
    _storage_client = apply_middleware(provider, [LoggingMiddleware()])

    logger.info(
        "Storage client initialized",
        provider=config.type,
        mode="MOCK" if config.type == StorageType.MOCK else "REAL",
        bucket=config.bucket,
    )
    return _storage_client


def get_storage_client() -> Optional[PhotoStorage]:
    """Get storage client instance.

    Returns:
        Storage provider instance or None if not initialized
    """
    return _storage_client


async def shutdown_storage_client() -> None:
    """Shutdown storage client."""
    global _storage_client

    if _storage_client is None:
        return
    _storage_client = None
    logger.info("Storage client shutdown")


async def get_storage() -> PhotoStorage:
    """FastAPI dependency for storage service.

    Returns:
        Storage provider instance

    Raises:
        RuntimeError: If storage not initialized
    """
    client = get_storage_client()
    if client is None:
        raise RuntimeError(
            "Storage client not initialized. "
            "Call init_storage_client() during startup."
        )
    return client


def unwrap_storage(storage: PhotoStorage) -> PhotoStorage:
    """Return the provider beneath any middleware wrapper."""
    return getattr(storage, "provider", storage)


# Export public interface
__all__ = [
    # Lifecycle
    "init_storage_client",
    "get_storage_client",
    "shutdown_storage_client",
    "get_storage",
    "unwrap_storage",

    # Configuration
    "get_storage_config",
    "StorageConfig",
    "StorageType",

    # Base types
    "PhotoStorage",
    "PHOTO_PREFIX",

    # Models
    "PhotoFile",
    "UploadResult",
    "DeleteResult",
    "StoredObject",
    "PresignedUpload",

    # Exceptions
    "StorageError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientError",
    "ConfigurationError",
    "StorageValidationError",
    "ObjectExistsError",

    # Utils
    "build_photo_key",
    "guess_content_type",
    "safe_join",
]

# Import models and exceptions for easier access
from .models import (
    PhotoFile,
    UploadResult,
    DeleteResult,
    StoredObject,
    PresignedUpload,
)
from .exceptions import (
    StorageError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ConfigurationError,
    StorageValidationError,
    ObjectExistsError,
)
from .utils import (
    build_photo_key,
    guess_content_type,
    safe_join,
)
