"""Camera capture client: polls a snapshot URL and relays frames to the ingest endpoint."""
from .client import CaptureClient, detect_image_type
from .config import CaptureSettings

__all__ = ["CaptureClient", "CaptureSettings", "detect_image_type"]
