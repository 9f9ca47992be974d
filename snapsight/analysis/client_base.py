from abc import ABC, abstractmethod
from typing import ClassVar


class BaseVisionClient(ABC):
    """Contract for provider-specific multimodal completion clients."""

    # True when the provider can resolve image URLs itself, so the analyzer
    # does not need to download and inline the image.
    accepts_image_url: ClassVar[bool] = False

    @abstractmethod
    async def generate(
        self,
        *,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        image_png: bytes | None = None,
        image_url: str | None = None,
    ) -> str:
        """Return the generated text.

        Raises:
            SnapsightError: classified transport, HTTP, or protocol failure.
        """

    async def aclose(self) -> None:
        """Release network resources."""
