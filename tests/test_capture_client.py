import asyncio

import httpx
import pytest

from capture_client import CaptureClient, detect_image_type
from capture_client.__main__ import parse_args

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32
CAMERA_URL = "http://camera.local/capture.jpg"
UPLOAD_URL = "http://ingest.local/upload"


class FakeNetwork:
    def __init__(self, camera=None, upload_status=200):
        self.camera = camera or (lambda request: httpx.Response(200, content=JPEG))
        self.upload_status = upload_status
        self.uploads = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "camera.local":
            return self.camera(request)
        self.uploads.append(request)
        return httpx.Response(self.upload_status, json={"success": True})


def _client(network, **kwargs):
    statuses, frames = [], []
    client = CaptureClient(
        CAMERA_URL,
        UPLOAD_URL,
        kwargs.pop("token", "s3cret"),
        http=httpx.AsyncClient(transport=httpx.MockTransport(network)),
        on_status=statuses.append,
        on_frame=frames.append,
        **kwargs,
    )
    return client, statuses, frames


def test_detect_image_type():
    assert detect_image_type(JPEG) == "image/jpeg"
    assert detect_image_type(b"\x89PNG\r\n\x1a\n....") == "image/png"
    assert detect_image_type(b"GIF89a...") == "image/gif"
    assert detect_image_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert detect_image_type(b"<html>") is None
    assert detect_image_type(b"") is None


@pytest.mark.asyncio
async def test_fetch_and_upload_forwards_frame():
    network = FakeNetwork()
    client, statuses, _ = _client(network)

    assert await client.fetch_and_upload() == 200

    request = network.uploads[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "image/jpeg"
    assert request.headers["Authorization"] == "Bearer s3cret"
    assert request.content == JPEG
    assert statuses == ["Image fetched, uploading...", "Upload successful"]
    await client.aclose()


@pytest.mark.asyncio
async def test_upload_without_token_sends_no_authorization():
    network = FakeNetwork()
    client, _, _ = _client(network, token=None)

    await client.fetch_and_upload()

    assert "Authorization" not in network.uploads[0].headers
    await client.aclose()


@pytest.mark.asyncio
async def test_rejected_upload_reports_status_code():
    client, statuses, _ = _client(FakeNetwork(upload_status=401))

    assert await client.fetch_and_upload() == 401
    assert statuses[-1] == "Upload failed: HTTP 401"
    await client.aclose()


@pytest.mark.asyncio
async def test_camera_error_skips_upload():
    network = FakeNetwork(camera=lambda request: httpx.Response(503))
    client, statuses, frames = _client(network)

    assert await client.fetch_and_upload() is None
    assert statuses[-1].startswith("Error fetching:")
    assert network.uploads == []
    assert frames == []
    await client.aclose()


@pytest.mark.asyncio
async def test_non_image_payload_skips_upload():
    network = FakeNetwork(camera=lambda request: httpx.Response(200, content=b"<html>busy</html>"))
    client, statuses, _ = _client(network)

    await client.fetch_and_upload()

    assert statuses == ["Invalid image data received"]
    assert network.uploads == []
    await client.aclose()


@pytest.mark.asyncio
async def test_upload_transport_error():
    def network(request):
        if request.url.host == "camera.local":
            return httpx.Response(200, content=JPEG)
        raise httpx.ConnectError("connection refused", request=request)

    client, statuses, _ = _client(network)

    assert await client.fetch_and_upload() is None
    assert statuses[-1].startswith("Upload error:")
    await client.aclose()


@pytest.mark.asyncio
async def test_frames_only_displayed_while_running():
    client, statuses, frames = _client(FakeNetwork())

    await client.fetch_and_upload()

    assert frames == []
    assert statuses[-1] == "Upload successful"
    await client.aclose()


@pytest.mark.asyncio
async def test_start_ticks_until_stopped():
    network = FakeNetwork()
    client, statuses, frames = _client(network, interval=0.05)

    await client.start()
    assert client.running
    await client.start()
    await asyncio.sleep(0.18)
    await client.stop()
    await client.wait_idle()

    assert not client.running
    assert statuses[0] == "Fetching images..."
    assert "Stopped" in statuses
    assert len(network.uploads) >= 2
    assert frames and all(f == JPEG for f in frames)

    uploads_after_stop = len(network.uploads)
    await asyncio.sleep(0.12)
    assert len(network.uploads) == uploads_after_stop
    await client.aclose()


def test_cli_arguments():
    args = parse_args(["--camera-url", CAMERA_URL, "--upload-url", UPLOAD_URL, "--token", "t", "--interval", "2"])
    assert args.camera_url == CAMERA_URL
    assert args.upload_url == UPLOAD_URL
    assert args.token == "t"
    assert args.interval == 2.0
    assert args.duration is None


@pytest.mark.asyncio
async def test_display_failure_does_not_skip_upload():
    network = FakeNetwork()
    statuses = []

    def broken_display(data):
        raise OSError("disk full")

    client = CaptureClient(
        CAMERA_URL,
        UPLOAD_URL,
        "s3cret",
        interval=60,
        http=httpx.AsyncClient(transport=httpx.MockTransport(network)),
        on_frame=broken_display,
        on_status=statuses.append,
    )

    await client.start()
    await asyncio.sleep(0.05)
    await client.wait_idle()
    await client.stop()

    assert len(network.uploads) == 1
    assert "Display error: disk full" in statuses
    assert "Upload successful" in statuses
    await client.aclose()
