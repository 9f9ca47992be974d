"""Example vision client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseVisionClient and register the provider in AnalyzerFactory.
"""

from typing import ClassVar

from snapsight.analysis.client_base import BaseVisionClient


class ExampleClientAdapter(BaseVisionClient):
    """Example adapter that returns a fixed markdown answer.

    No network calls. Useful for local development and for exercising the
    pipeline without credentials for a real provider.
    """

    accepts_image_url = True

    DEFAULT_RESPONSE: ClassVar[str] = (
        "**Problem summary**: example analysis.\n\n"
        "```python\n"
        "def solve() -> None:\n"
        "    pass\n"
        "```\n"
    )

    def __init__(self, response: str | None = None) -> None:
        self._response = response or self.DEFAULT_RESPONSE
        self.calls: list[dict[str, object]] = []

    async def generate(
        self,
        *,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        image_png: bytes | None = None,
        image_url: str | None = None,
    ) -> str:
        self.calls.append(
            {
                "prompt": prompt,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
                "image_png": image_png,
                "image_url": image_url,
            }
        )
        return self._response
