import asyncio
from pathlib import Path

from snapsight.capture.models import CapturedImage
from snapsight.errors import FileReadError


class FileLoader:
    """Reads a captured image from disk."""

    async def read_bytes(self, path: Path) -> bytes:
        """Read file bytes without blocking the event loop.

        Raises:
            FileReadError: if the file is missing or unreadable.
        """
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}", phase="read") from exc

    async def load(self, path: Path) -> CapturedImage:
        data = await self.read_bytes(path)
        return CapturedImage(data=data, path=path)
