"""Capture client settings (``CAPTURE_*`` environment variables)."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CaptureSettings(BaseSettings):
    camera_url: str = "http://192.13.13.13/capture.jpg"
    upload_url: str = "http://localhost:3000/upload"
    token: Optional[str] = None
    interval: float = Field(default=1.0, gt=0)
    request_timeout: Optional[float] = None
    output_path: str = "latest.jpg"

    model_config = SettingsConfigDict(
        env_prefix="CAPTURE_",
        env_file=".env",
        extra="ignore",
    )
