"""Filesystem-backed mock photo storage for local development."""
import asyncio
import posixpath
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

import aiofiles
import aiofiles.os
import anyio

from core.logging_config import get_logger
from ..base import PHOTO_PREFIX
from ..config import StorageConfig
from ..exceptions import ObjectExistsError, StorageError, StorageValidationError
from ..models import (
    DeleteResult,
    PhotoFile,
    PresignedUpload,
    StoredObject,
    UploadResult,
)
from ..utils import (
    build_photo_key,
    check_photo,
    ensure_content_type,
    safe_join,
)

logger = get_logger(__name__)

DEFAULT_MOCK_BASE_URL = "http://localhost:3000/mock-storage"


class MockPhotoStorage:
    """Stores photos on the local filesystem and mimics the S3 facade.

    Keys map onto paths below ``local_base_path``; URLs point at the
    ``/mock-storage`` static mount served by the API process.
    """

    def __init__(self, config: StorageConfig):
        self.config = config
        self.base_path = Path(config.local_base_path).resolve()
        self.base_url = (config.public_base_url or DEFAULT_MOCK_BASE_URL).rstrip("/")

        # 已签发但尚未被上传的预签名键
        self._issued_keys: set[str] = set()

        self.base_path.mkdir(parents=True, exist_ok=True)

    async def upload_photo(self, file: PhotoFile) -> UploadResult:
        """Write one photo to disk."""
        reason = check_photo(file, self.config.allowed_mime_types, self.config.max_file_size)
        if reason:
            return UploadResult(success=False, error=reason)

        key = build_photo_key(file.original_name)
        try:
            await self._write(key, file.content)
        except Exception as e:
            logger.error("Mock upload failed", key=key, error=str(e))
            return UploadResult(success=False, error=str(e) or "Unknown error occurred")

        logger.info("Uploaded to mock storage", key=key, size=file.size)
        return UploadResult(success=True, key=key, url=self.public_url(key))

    async def upload_multiple_photos(self, files: list[PhotoFile]) -> list[UploadResult]:
        return list(await asyncio.gather(*(self.upload_photo(f) for f in files)))

    async def list_photos(
        self,
        prefix: str = PHOTO_PREFIX,
        max_keys: int = 100,
    ) -> list[StoredObject]:
        """List stored photos, sorted by key."""
        if max_keys <= 0:
            return []
        try:
            entries = await anyio.to_thread.run_sync(self._scan, prefix or "", max_keys)
        except Exception as e:
            raise StorageError(f"Failed to list objects with prefix '{prefix}': {e}", operation="list_photos") from e

        return [
            StoredObject(
                key=key,
                url=self.public_url(key),
                last_modified=modified,
                size=size,
            )
            for key, size, modified in entries
        ]

    async def delete_photo(self, key: str) -> DeleteResult:
        try:
            file_path = self._safe_path(key)
            if not file_path.is_file():
                return DeleteResult(success=False, error="File not found")
            await aiofiles.os.remove(file_path)
        except Exception as e:
            logger.error("Mock delete failed", key=key, error=str(e))
            return DeleteResult(success=False, error=str(e) or "Unknown error occurred")

        logger.info("Deleted from mock storage", key=key)
        return DeleteResult(success=True)

    async def get_presigned_upload_url(
        self,
        file_name: str,
        content_type: str,
        expires_in: int = 3600,
    ) -> PresignedUpload:
        """Return a URL to the local mock-upload endpoint.

        ``expires_in`` is accepted for interface parity; mock URLs never expire.
        """
        ensure_content_type(content_type, self.config.allowed_mime_types)
        key = build_photo_key(file_name)
        self._issued_keys.add(key)
        url = (
            f"{self.base_url}/mock-upload"
            f"?key={quote(key, safe='/')}&contentType={quote(content_type, safe='')}"
        )
        logger.info("Mock presigned URL generated", key=key, expires_in=expires_in)
        return PresignedUpload(url=url, key=key)

    async def store_presigned_upload(self, key: str, content: bytes, content_type: str) -> UploadResult:
        """Accept bytes sent to a mock presigned URL.

        Applies the same rules as ``upload_photo`` but keeps the key that
        was handed out with the URL. Only keys issued by
        ``get_presigned_upload_url`` are accepted, each at most once.

        Raises:
            StorageValidationError: Key malformed or never issued, or the
                payload fails the type/size rules
            ObjectExistsError: Something is already stored under the key
        """
        if not self._is_canonical_key(key):
            raise StorageValidationError(f"Invalid key: {key!r}")
        if key not in self._issued_keys:
            raise StorageValidationError(f"Key was not issued for upload: {key!r}")
        reason = check_photo(
            PhotoFile(content=content, mime_type=content_type, original_name=key),
            self.config.allowed_mime_types,
            self.config.max_file_size,
        )
        if reason:
            raise StorageValidationError(reason)

        try:
            await self._write(key, content, exclusive=True)
        except FileExistsError:
            self._issued_keys.discard(key)
            raise ObjectExistsError(f"Object already exists: {key!r}", operation="store_presigned_upload") from None
        self._issued_keys.discard(key)
        logger.info("Stored mock presigned upload", key=key, size=len(content))
        return UploadResult(success=True, key=key, url=self.public_url(key))

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key.lstrip('/'), safe='/')}"

    async def health_check(self) -> bool:
        """Check the storage directory is writable."""
        try:
            test_file = self.base_path / ".health_check"
            test_file.touch()
            test_file.unlink()
            return True
        except OSError as e:
            logger.error("Mock storage health check failed", error=str(e))
            return False

    async def _write(self, key: str, content: bytes, exclusive: bool = False) -> None:
        file_path = self._safe_path(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(file_path, "xb" if exclusive else "wb") as f:
            await f.write(content)

    @staticmethod
    def _is_canonical_key(key: str) -> bool:
        """``photos/...`` with no empty, ``.`` or ``..`` segments."""
        if not key.startswith(PHOTO_PREFIX) or key == PHOTO_PREFIX:
            return False
        if posixpath.normpath(key) != key:
            return False
        return all(part not in ("", ".", "..") for part in key.split("/"))

    def _scan(self, prefix: str, max_keys: int) -> list[tuple[str, int, datetime]]:
        entries = []
        for path in sorted(self.base_path.rglob("*")):
            if not path.is_file() or path.name.startswith("."):
                continue
            key = path.relative_to(self.base_path).as_posix()
            if prefix and not key.startswith(prefix):
                continue
            stat = path.stat()
            entries.append(
                (key, stat.st_size, datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc))
            )
            if len(entries) >= max_keys:
                break
        return entries

    def _safe_path(self, key: str) -> Path:
        return Path(safe_join(str(self.base_path), key))


async def build_mock_provider(config: StorageConfig) -> MockPhotoStorage:
    """Build the filesystem mock provider.

    Args:
        config: Storage configuration

    Returns:
        Configured mock provider instance
    """
    provider = MockPhotoStorage(config)

    if not await provider.health_check():
        raise StorageError("Failed to access mock storage directory")

    return provider
