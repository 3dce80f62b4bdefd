"""Storage utility functions and middleware support."""
import asyncio
import mimetypes
import re
import time
import uuid
from os.path import basename, splitext
from pathlib import Path
from typing import Optional

from core.logging_config import get_logger
from .base import PHOTO_PREFIX, PhotoStorage
from .exceptions import StorageValidationError
from .models import (
    DeleteResult,
    PhotoFile,
    PresignedUpload,
    StoredObject,
    UploadResult,
)

logger = get_logger(__name__)

_EXT_UNSAFE = re.compile(r"[^A-Za-z0-9.]+")


# Key generation utilities
def file_extension(filename: str) -> str:
    """Return the extension of ``filename`` including the dot, or "".

    Example:
        file_extension("cat.JPG") -> ".JPG"
        file_extension(".bashrc") -> ""
    """
    _, ext = splitext(basename(filename or ""))
    return _EXT_UNSAFE.sub("", ext)


def generate_photo_name(original_name: str) -> str:
    """UUID4 file name carrying the original extension."""
    return f"{uuid.uuid4()}{file_extension(original_name)}"


def build_photo_key(original_name: str) -> str:
    """Build a fresh storage key under the photo prefix.

    Example:
        build_photo_key("cat.jpg") -> "photos/0b7c...e1.jpg"
    """
    return f"{PHOTO_PREFIX}{generate_photo_name(original_name)}"


def describe_allowed(allowed: list[str]) -> str:
    return f"Invalid file type. Allowed types: {', '.join(allowed)}"


def check_photo(file: PhotoFile, allowed_types: list[str], max_size: int) -> Optional[str]:
    """Return a rejection reason for ``file`` or None when it is acceptable."""
    if file.mime_type not in allowed_types:
        return describe_allowed(allowed_types)
    if file.size > max_size:
        return f"File too large: {file.size} bytes exceeds the {max_size} byte limit"
    return None


def ensure_content_type(content_type: str, allowed_types: list[str]) -> None:
    """Raise when a presign request names a content type outside the allowlist."""
    if content_type not in allowed_types:
        raise StorageValidationError(describe_allowed(allowed_types))


def guess_content_type(filename: str) -> str:
    """Guess content type from filename.

    Args:
        filename: File name or path

    Returns:
        MIME type string
    """
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


def safe_join(base: str, relative: str) -> str:
    """Safely join paths preventing traversal attacks.

    Args:
        base: Base path
        relative: Relative path to join

    Returns:
        Safe joined path

    Raises:
        StorageValidationError: If path would escape base
    """
    clean = relative.lstrip("/")

    base_path = Path(base).resolve()
    full_path = (base_path / clean).resolve()

    try:
        full_path.relative_to(base_path)
    except ValueError:
        raise StorageValidationError(f"Path escapes base directory: {relative}")

    if full_path == base_path:
        raise StorageValidationError(f"Invalid key: {relative!r}")

    return str(full_path)


# Middleware support
class StorageMiddleware:
    """Base class for storage middleware."""

    async def before_upload(self, file: PhotoFile) -> PhotoFile:
        """Process before upload.

        Returns:
            Potentially modified file
        """
        return file

    async def after_upload(self, result: UploadResult, file: PhotoFile) -> UploadResult:
        """Process after an upload attempt (accepted or rejected).

        Returns:
            Potentially modified result
        """
        return result

    async def on_error(self, error: Exception, operation: str, **kwargs) -> None:
        """Handle errors raised during operations."""
        pass


class LoggingMiddleware(StorageMiddleware):
    """Middleware for structured logging of storage operations."""

    async def before_upload(self, file: PhotoFile) -> PhotoFile:
        logger.info(
            "Storage upload starting",
            original_name=file.original_name,
            size=file.size,
            content_type=file.mime_type,
        )
        return file

    async def after_upload(self, result: UploadResult, file: PhotoFile) -> UploadResult:
        if result.success:
            logger.info(
                "Storage upload completed",
                key=result.key,
                size=file.size,
                url=result.url,
            )
        else:
            logger.warning(
                "Storage upload rejected",
                original_name=file.original_name,
                content_type=file.mime_type,
                error=result.error,
            )
        return result

    async def on_error(self, error: Exception, operation: str, **kwargs) -> None:
        logger.error(
            "Storage operation failed",
            operation=operation,
            error=str(error),
            **kwargs
        )


class MiddlewareStorage:
    """Photo storage wrapper with middleware support."""

    def __init__(self, provider: PhotoStorage, middlewares: list[StorageMiddleware]):
        """Initialize middleware storage.

        Args:
            provider: Underlying storage provider
            middlewares: List of middleware to apply
        """
        self.provider = provider
        self.middlewares = middlewares

    async def upload_photo(self, file: PhotoFile) -> UploadResult:
        """Upload with middleware processing."""
        for middleware in self.middlewares:
            file = await middleware.before_upload(file)

        start_time = time.time()
        result = await self.provider.upload_photo(file)
        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Storage upload performance",
            key=result.key,
            elapsed_ms=f"{elapsed_ms:.2f}",
            size=file.size,
        )

        for middleware in self.middlewares:
            result = await middleware.after_upload(result, file)
        return result

    async def upload_multiple_photos(self, files: list[PhotoFile]) -> list[UploadResult]:
        """Concurrent uploads, each passing through the middleware chain."""
        return list(await asyncio.gather(*(self.upload_photo(f) for f in files)))

    async def list_photos(self, prefix: str = PHOTO_PREFIX, max_keys: int = 100) -> list[StoredObject]:
        try:
            return await self.provider.list_photos(prefix, max_keys)
        except Exception as e:
            for middleware in self.middlewares:
                await middleware.on_error(e, "list_photos", prefix=prefix)
            raise

    async def delete_photo(self, key: str) -> DeleteResult:
        result = await self.provider.delete_photo(key)
        if not result.success:
            logger.warning("Storage delete failed", key=key, error=result.error)
        return result

    async def get_presigned_upload_url(
        self,
        file_name: str,
        content_type: str,
        expires_in: int = 3600,
    ) -> PresignedUpload:
        try:
            return await self.provider.get_presigned_upload_url(file_name, content_type, expires_in)
        except Exception as e:
            for middleware in self.middlewares:
                await middleware.on_error(e, "get_presigned_upload_url", file_name=file_name)
            raise

    def public_url(self, key: str) -> str:
        return self.provider.public_url(key)

    async def health_check(self) -> bool:
        return await self.provider.health_check()


def apply_middleware(
    provider: PhotoStorage,
    middlewares: list[StorageMiddleware]
) -> PhotoStorage:
    """Apply middleware to a storage provider.

    Args:
        provider: Base storage provider
        middlewares: List of middleware to apply

    Returns:
        Provider wrapped with middleware
    """
    if not middlewares:
        return provider

    return MiddlewareStorage(provider, middlewares)
