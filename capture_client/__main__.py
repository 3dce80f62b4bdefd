"""Run the capture loop from the command line.

    python -m capture_client --camera-url http://cam/capture.jpg \
        --upload-url https://api.example.com/prod/upload --token s3cret
"""
import argparse
import asyncio
from pathlib import Path
from typing import Optional

from capture_client.client import CaptureClient
from capture_client.config import CaptureSettings
from core.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    defaults = CaptureSettings()
    parser = argparse.ArgumentParser(description="Poll a camera snapshot URL and relay frames to the ingest endpoint")
    parser.add_argument("--camera-url", default=defaults.camera_url, help="Snapshot URL to poll")
    parser.add_argument("--upload-url", default=defaults.upload_url, help="Ingest endpoint receiving each frame")
    parser.add_argument("--token", default=defaults.token, help="Bearer token for the ingest endpoint")
    parser.add_argument("--interval", type=float, default=defaults.interval, help="Seconds between ticks (default: 1.0)")
    parser.add_argument("--timeout", type=float, default=defaults.request_timeout, help="Per-request timeout in seconds (default: none)")
    parser.add_argument("--output", type=Path, default=Path(defaults.output_path), help="Where the latest frame is written")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds (default: run until interrupted)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def frame_writer(path: Path):
    def _write(data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return _write


async def run(args: argparse.Namespace) -> None:
    client = CaptureClient(
        args.camera_url,
        args.upload_url,
        args.token,
        interval=args.interval,
        timeout=args.timeout,
        on_frame=frame_writer(args.output),
    )
    await client.start()
    try:
        if args.duration is not None:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    finally:
        await client.aclose()


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(level="DEBUG" if args.verbose else "INFO", json_logs=False)
    logger.info("capture_starting", camera_url=args.camera_url, upload_url=args.upload_url)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("capture_interrupted")


if __name__ == "__main__":
    main()
