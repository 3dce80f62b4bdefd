"""
Capture loop

Every tick spawns one fetch-then-upload attempt; attempts never wait for
each other and nothing is retried. ``stop()`` only cancels the ticker:
attempts already in flight finish, their status is still reported but
their frames are no longer displayed.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import httpx

from core.logging_config import get_logger

logger = get_logger(__name__)

FrameCallback = Callable[[bytes], None]
StatusCallback = Callable[[str], None]

_SIGNATURES = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def detect_image_type(data: bytes) -> Optional[str]:
    """Sniff the image MIME type from magic bytes, None if unrecognised."""
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


class CaptureClient:
    """Polls ``camera_url`` and forwards each frame to ``upload_url``."""

    def __init__(
        self,
        camera_url: str,
        upload_url: str,
        token: Optional[str] = None,
        *,
        interval: float = 1.0,
        http: Optional[httpx.AsyncClient] = None,
        on_frame: Optional[FrameCallback] = None,
        on_status: Optional[StatusCallback] = None,
        timeout: Optional[float] = None,
    ):
        self.camera_url = camera_url
        self.upload_url = upload_url
        self.token = token
        self.interval = interval
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http is None
        self._on_frame = on_frame
        self._on_status = on_status
        self._running = False
        self._ticker: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()
        self.status = "Ready"

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._set_status("Fetching images...")
        self._ticker = asyncio.create_task(self._tick_forever())

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._ticker is not None:
            self._ticker.cancel()
            try:
                await self._ticker
            except asyncio.CancelledError:
                pass
            self._ticker = None
        self._set_status("Stopped")

    async def wait_idle(self) -> None:
        """Wait for every in-flight attempt to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def aclose(self) -> None:
        await self.stop()
        await self.wait_idle()
        if self._owns_http:
            await self._http.aclose()

    async def fetch_and_upload(self) -> Optional[int]:
        """Run one attempt; returns the upload HTTP status or None."""
        try:
            response = await self._http.get(self.camera_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self._set_status(f"Error fetching: {exc}")
            return None

        data = response.content
        if not data or detect_image_type(data) is None:
            self._set_status("Invalid image data received")
            return None

        if self._running and self._on_frame is not None:
            try:
                self._on_frame(data)
            except Exception as exc:
                # the upload still runs when display fails
                self._set_status(f"Display error: {exc}")
        self._set_status("Image fetched, uploading...")

        return await self.upload(data)

    async def upload(self, data: bytes) -> Optional[int]:
        headers = {"Content-Type": "image/jpeg"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._http.post(self.upload_url, content=data, headers=headers)
        except httpx.HTTPError as exc:
            self._set_status(f"Upload error: {exc}")
            return None

        if response.is_success:
            self._set_status("Upload successful")
        else:
            self._set_status(f"Upload failed: HTTP {response.status_code}")
        return response.status_code

    async def _tick_forever(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self._running:
            self._spawn(self.fetch_and_upload())
            next_tick += self.interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def _spawn(self, attempt: Awaitable) -> None:
        task = asyncio.ensure_future(attempt)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _set_status(self, message: str) -> None:
        self.status = message
        logger.info("capture_status", status=message)
        if self._on_status is not None:
            self._on_status(message)
