"""AWS S3 photo storage provider implementation."""
import asyncio
from functools import partial
from typing import Any, Optional
from urllib.parse import quote

import anyio

from core.logging_config import get_logger
from ..base import PHOTO_PREFIX
from ..config import StorageConfig
from ..exceptions import (
    StorageError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ConfigurationError,
)
from ..models import (
    DeleteResult,
    PhotoFile,
    PresignedUpload,
    StoredObject,
    UploadResult,
)
from ..utils import build_photo_key, check_photo, ensure_content_type

logger = get_logger(__name__)


class S3PhotoStorage:
    """AWS S3 photo storage provider."""

    def __init__(
        self,
        client: Any,  # boto3 S3 client
        config: StorageConfig
    ):
        """Initialize S3 provider.

        Args:
            client: Boto3 S3 client instance
            config: Storage configuration
        """
        self.client = client
        self.config = config
        self.bucket = config.bucket
        self.region = config.region or "us-east-1"

    async def upload_photo(self, file: PhotoFile) -> UploadResult:
        """Upload one photo to S3."""
        reason = check_photo(file, self.config.allowed_mime_types, self.config.max_file_size)
        if reason:
            return UploadResult(success=False, error=reason)

        key = build_photo_key(file.original_name)
        extra_args = {"ContentType": file.mime_type}
        if self.config.s3_acl:
            extra_args["ACL"] = self.config.s3_acl

        try:
            # Upload using thread pool for sync SDK
            await anyio.to_thread.run_sync(
                partial(
                    self.client.put_object,
                    Bucket=self.bucket,
                    Key=key,
                    Body=file.content,
                    **extra_args
                )
            )
        except Exception as e:
            logger.error("S3 upload failed", key=key, error=str(e))
            return UploadResult(success=False, error=str(e) or "Unknown error occurred")

        logger.info("Uploaded to S3", key=key, size=file.size)
        return UploadResult(success=True, key=key, url=self.public_url(key))

    async def upload_multiple_photos(self, files: list[PhotoFile]) -> list[UploadResult]:
        return list(await asyncio.gather(*(self.upload_photo(f) for f in files)))

    async def list_photos(
        self,
        prefix: str = PHOTO_PREFIX,
        max_keys: int = 100,
    ) -> list[StoredObject]:
        """List photos in S3 (single page, no continuation token)."""
        if max_keys <= 0:
            return []
        try:
            response = await anyio.to_thread.run_sync(
                partial(
                    self.client.list_objects_v2,
                    Bucket=self.bucket,
                    Prefix=prefix or "",
                    MaxKeys=max_keys
                )
            )
        except Exception as e:
            self._handle_exception(e, f"list objects {prefix}")

        objects = []
        for obj in (response or {}).get("Contents", [])[:max_keys]:
            key = obj.get("Key", "")
            objects.append(StoredObject(
                key=key,
                url=self.public_url(key),
                last_modified=obj.get("LastModified"),
                size=obj.get("Size"),
            ))
        return objects

    async def delete_photo(self, key: str) -> DeleteResult:
        """Delete a photo from S3."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.delete_object,
                    Bucket=self.bucket,
                    Key=key
                )
            )
        except Exception as e:
            logger.error("S3 delete failed", key=key, error=str(e))
            return DeleteResult(success=False, error=str(e) or "Unknown error occurred")

        logger.info("Deleted from S3", key=key)
        return DeleteResult(success=True)

    async def get_presigned_upload_url(
        self,
        file_name: str,
        content_type: str,
        expires_in: int = 3600,
    ) -> PresignedUpload:
        """Generate a presigned PUT URL for a fresh key."""
        ensure_content_type(content_type, self.config.allowed_mime_types)
        key = build_photo_key(file_name)
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "ContentType": content_type,
        }
        if self.config.s3_acl:
            params["ACL"] = self.config.s3_acl

        try:
            url = await anyio.to_thread.run_sync(
                partial(
                    self.client.generate_presigned_url,
                    ClientMethod="put_object",
                    Params=params,
                    ExpiresIn=expires_in
                )
            )
        except Exception as e:
            self._handle_exception(e, f"generate presigned URL {key}")

        logger.info("S3 presigned URL generated", key=key, expires_in=expires_in)
        return PresignedUpload(url=url, key=key)

    def public_url(self, key: str) -> str:
        """Get public/CDN URL for a key."""
        encoded = quote(key, safe="/")
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{encoded}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{encoded}"

    async def health_check(self) -> bool:
        """Check S3 connectivity."""
        try:
            await anyio.to_thread.run_sync(
                partial(
                    self.client.head_bucket,
                    Bucket=self.bucket
                )
            )
            logger.info("S3 health check passed", bucket=self.bucket)
            return True
        except Exception as e:
            logger.error("S3 health check failed", bucket=self.bucket, error=str(e))
            return False

    def _handle_exception(self, e: Exception, operation: str) -> None:
        """Map S3 exceptions to storage exceptions."""
        response: Optional[dict] = getattr(e, "response", None)
        error_code = (response or {}).get("Error", {}).get("Code", "")

        if error_code in ["NoSuchKey", "NoSuchBucket", "404"]:
            raise NotFoundError(f"Object not found: {operation}", operation=operation) from e
        elif error_code in ["AccessDenied", "403"]:
            raise PermissionDeniedError(f"Access denied: {operation}", operation=operation) from e
        elif error_code in ["RequestTimeout", "SlowDown", "ServiceUnavailable"]:
            raise TransientError(f"Transient error: {operation}: {e}", operation=operation) from e
        else:
            raise StorageError(f"S3 error during {operation}: {e}", operation=operation) from e


def build_s3_client(config: StorageConfig) -> Any:
    """Create the boto3 S3 client described by ``config``.

    Botocore is limited to a single attempt: failures surface to the caller.
    """
    import boto3
    from botocore.config import Config as BotoConfig

    boto_config = BotoConfig(
        region_name=config.region,
        signature_version="s3v4",
        retries={
            "total_max_attempts": 1,
            "mode": "standard"
        },
        connect_timeout=config.timeout,
        read_timeout=config.timeout
    )

    client_args = {
        "service_name": "s3",
        "config": boto_config
    }

    if config.aws_access_key_id and config.aws_secret_access_key:
        client_args.update({
            "aws_access_key_id": config.aws_access_key_id,
            "aws_secret_access_key": config.aws_secret_access_key
        })

    if config.endpoint:
        client_args["endpoint_url"] = config.endpoint
        client_args["use_ssl"] = config.enable_ssl

    return boto3.client(**client_args)


async def build_s3_provider(config: StorageConfig) -> S3PhotoStorage:
    """Build S3 storage provider.

    Args:
        config: Storage configuration

    Returns:
        Configured S3 provider instance
    """
    if not config.bucket:
        raise ConfigurationError("S3 bucket name is required")

    provider = S3PhotoStorage(build_s3_client(config), config)

    if not await provider.health_check():
        raise ConfigurationError(f"Failed to connect to S3 bucket '{config.bucket}'")

    return provider
