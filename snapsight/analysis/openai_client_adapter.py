from typing import Any

import openai

from snapsight.analysis.client_base import BaseVisionClient
from snapsight.errors import (
    InvalidResponseError,
    OfflineError,
    RequestTimeoutError,
    classify_status,
)


class OpenAIClientAdapter(BaseVisionClient):
    """Vision client built on the OpenAI-compatible chat completions API.

    The image is passed by URL; the provider fetches it server-side.
    """

    accepts_image_url = True

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: float,
        base_url: str | None = None,
    ) -> None:
        self._model = model
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    async def generate(
        self,
        *,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        image_png: bytes | None = None,
        image_url: str | None = None,
    ) -> str:
        _ = image_png
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        if image_url is not None:
            content.append({"type": "image_url", "image_url": {"url": image_url}})
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=temperature,
                max_tokens=max_output_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except openai.APITimeoutError as exc:
            raise RequestTimeoutError(
                f"AI provider timed out: {exc}", phase="completion"
            ) from exc
        except openai.APIConnectionError as exc:
            raise OfflineError(
                f"AI provider network error: {exc}", phase="completion"
            ) from exc
        except openai.APIStatusError as exc:
            raise classify_status(
                exc.status_code, f"AI provider API error: {exc}", phase="completion"
            ) from exc

        if not response.choices:
            raise InvalidResponseError("AI returned no choices", phase="completion")
        text = response.choices[0].message.content
        if not text:
            raise InvalidResponseError("AI returned empty response", phase="completion")
        return text

    async def aclose(self) -> None:
        await self._client.close()
