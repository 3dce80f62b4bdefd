"""Lambda entry point: authenticated base64 image ingest into S3."""
from __future__ import annotations

import base64
import binascii
import hmac
import json
import time
from functools import lru_cache
from typing import Any, Optional

from core.logging_config import configure_logging, get_logger
from ingest_app.config import IngestSettings, get_ingest_settings

configure_logging()
logger = get_logger(__name__)


class IngestRejected(Exception):
    """Request rejected before anything is written."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


@lru_cache
def get_s3_client() -> Any:
    import boto3

    return boto3.client("s3", region_name=get_ingest_settings().region)


def _header(headers: dict, name: str) -> str:
    """Case-insensitive header lookup (API Gateway keeps client casing)."""
    lowered = name.lower()
    for key, value in (headers or {}).items():
        if key.lower() == lowered:
            return value or ""
    return ""


def is_authorized(headers: dict, secret_key: Optional[str]) -> bool:
    if not secret_key:
        return False
    supplied = _header(headers, "Authorization").encode("utf-8")
    expected = f"Bearer {secret_key}".encode("utf-8")
    return hmac.compare_digest(supplied, expected)


def extract_image(event: dict) -> bytes:
    """Pull the image bytes out of the invocation event.

    Accepts a JSON body ``{"image": "<base64>"}``. A raw image body (the
    gateway sets ``isBase64Encoded`` and the request is ``image/*``) is
    taken as the image itself.
    """
    body = event.get("body") or ""
    content_type = _header(event.get("headers") or {}, "Content-Type").lower()

    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            raise IngestRejected(400, "Invalid base64 body")
        if content_type.startswith("image/"):
            if not raw:
                raise IngestRejected(400, "Missing image data")
            return raw
        body = raw.decode("utf-8", errors="replace")

    try:
        payload = json.loads(body or "{}")
    except ValueError:
        raise IngestRejected(400, "Invalid JSON body")

    image = payload.get("image") if isinstance(payload, dict) else None
    if not image:
        raise IngestRejected(400, "Missing image data")

    try:
        return base64.b64decode(image, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise IngestRejected(400, "Invalid image encoding")


def build_key(settings: IngestSettings, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{settings.key_prefix}{now_ms}.jpg"


def handler(event: dict, context: Any = None) -> dict:
    settings = get_ingest_settings()
    try:
        if not settings.secret_key:
            logger.warning("ingest_secret_missing", message="SECRET_KEY not configured, rejecting")
        if not is_authorized(event.get("headers") or {}, settings.secret_key):
            raise IngestRejected(401, "Unauthorized")

        image = extract_image(event)
        key = build_key(settings)

        get_s3_client().put_object(
            Bucket=settings.bucket_name,
            Key=key,
            Body=image,
            ContentType=settings.content_type,
        )
        logger.info("ingest_stored", key=key, size=len(image), bucket=settings.bucket_name)
        return {
            "statusCode": 200,
            "body": json.dumps({"success": True, "key": key}),
        }
    except IngestRejected as exc:
        logger.info("ingest_rejected", status_code=exc.status_code, reason=exc.message)
        return {"statusCode": exc.status_code, "body": exc.message}
    except Exception as exc:
        logger.error("ingest_failed", error=str(exc), exc_info=True)
        return {"statusCode": 500, "body": json.dumps({"error": str(exc)})}
