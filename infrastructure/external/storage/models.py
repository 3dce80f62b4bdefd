"""Storage data transfer objects."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PhotoFile(BaseModel):
    """Incoming photo held in memory."""
    content: bytes = Field(repr=False)
    mime_type: str
    original_name: str = ""

    @property
    def size(self) -> int:
        return len(self.content)


class StoredObject(BaseModel):
    """Stored photo as returned by listings."""
    key: str
    url: str
    last_modified: Optional[datetime] = None
    size: Optional[int] = None


class UploadResult(BaseModel):
    """Outcome of a single upload attempt."""
    success: bool
    key: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None


class DeleteResult(BaseModel):
    """Outcome of a delete attempt."""
    success: bool
    error: Optional[str] = None


class PresignedUpload(BaseModel):
    """Time-limited URL for a direct client upload."""
    url: str
    key: str
