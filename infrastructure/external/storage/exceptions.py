"""Storage service exceptions.

Raised by listing and presigning; upload and delete report failures
through their result objects instead.
"""
from typing import Optional


class StorageError(Exception):
    """Base storage exception."""

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class NotFoundError(StorageError):
    """Bucket or object missing."""


class PermissionDeniedError(StorageError):
    """Credentials lack access to the bucket."""


class TransientError(StorageError):
    """Throttling, timeouts or a temporarily unavailable service."""


class ConfigurationError(StorageError):
    """Backend cannot be built from the given configuration."""


class StorageValidationError(StorageError):
    """Rejected input (content type outside the allowlist, oversized payload)."""


class ObjectExistsError(StorageError):
    """Key already holds a stored object; stored photos are never overwritten."""
