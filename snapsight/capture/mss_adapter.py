import asyncio
import time
from pathlib import Path

import mss
import mss.tools

from snapsight.capture.base import BaseCaptureProvider
from snapsight.capture.models import CapturedImage
from snapsight.errors import CaptureError
from snapsight.logging.logger import Log


def screenshot_path(capture_dir: Path, timestamp_ms: int) -> Path:
    """Build path to a capture file: {capture_dir}/screenshot-{timestamp_ms}.png"""
    return capture_dir / f"screenshot-{timestamp_ms}.png"


class MssCaptureProvider(BaseCaptureProvider):
    """Captures the primary monitor with mss and keeps a copy on disk."""

    PRIMARY_MONITOR = 1

    def __init__(self, capture_dir: Path) -> None:
        self._capture_dir = capture_dir

    async def capture(self) -> CapturedImage:
        try:
            image = await asyncio.to_thread(self._grab)
        except CaptureError:
            raise
        except Exception as exc:
            raise CaptureError(f"screen capture failed: {exc}", phase="capture") from exc
        Log.info(f"Captured {len(image.data)} bytes to {image.path}")
        return image

    def _grab(self) -> CapturedImage:
        with mss.mss() as sct:
            if len(sct.monitors) <= self.PRIMARY_MONITOR:
                raise CaptureError("no capture source found", phase="capture")
            shot = sct.grab(sct.monitors[self.PRIMARY_MONITOR])
            png = mss.tools.to_png(shot.rgb, shot.size)
        if not png:
            raise CaptureError("encoder returned no PNG data", phase="capture")
        self._capture_dir.mkdir(parents=True, exist_ok=True)
        path = screenshot_path(self._capture_dir, int(time.time() * 1000))
        path.write_bytes(png)
        return CapturedImage(data=png, path=path)
