"""Photo storage provider protocol definitions."""
from typing import Protocol, runtime_checkable

from .models import (
    DeleteResult,
    PhotoFile,
    PresignedUpload,
    StoredObject,
    UploadResult,
)

PHOTO_PREFIX = "photos/"


@runtime_checkable
class PhotoStorage(Protocol):
    """Uniform photo storage facade implemented by every backend.

    Upload and delete report failures through their result objects;
    listing and presigning raise ``StorageError`` subclasses instead.
    """

    async def upload_photo(self, file: PhotoFile) -> UploadResult:
        """Validate and store one photo under a server-generated key."""
        ...

    async def upload_multiple_photos(self, files: list[PhotoFile]) -> list[UploadResult]:
        """Upload every file independently; results follow input order."""
        ...

    async def list_photos(
        self,
        prefix: str = PHOTO_PREFIX,
        max_keys: int = 100,
    ) -> list[StoredObject]:
        """List at most ``max_keys`` photos whose key starts with ``prefix``."""
        ...

    async def delete_photo(self, key: str) -> DeleteResult:
        """Delete a stored photo."""
        ...

    async def get_presigned_upload_url(
        self,
        file_name: str,
        content_type: str,
        expires_in: int = 3600,
    ) -> PresignedUpload:
        """Mint a time-limited URL for a direct client upload."""
        ...

    def public_url(self, key: str) -> str:
        """Get the publicly resolvable URL for a key."""
        ...

    async def health_check(self) -> bool:
        """Check storage connectivity and permissions."""
        ...
