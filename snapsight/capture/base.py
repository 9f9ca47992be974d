from abc import ABC, abstractmethod

from snapsight.capture.models import CapturedImage


class BaseCaptureProvider(ABC):
    """Contract for screen capture adapters."""

    @abstractmethod
    async def capture(self) -> CapturedImage:
        """Capture the primary display as PNG.

        Raises:
            CaptureError: if the screen cannot be captured for any reason.
        """
