import base64
from typing import Any

import httpx

from snapsight.analysis.client_base import BaseVisionClient
from snapsight.errors import InvalidResponseError, classify_status, classify_transport


class GeminiClientAdapter(BaseVisionClient):
    """Multimodal client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        *,
        api_key: str,
        endpoint: str,
        timeout_seconds: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._timeout = timeout_seconds
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    async def generate(
        self,
        *,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        image_png: bytes | None = None,
        image_url: str | None = None,
    ) -> str:
        _ = image_url
        payload = build_payload(
            prompt,
            image_png=image_png,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        try:
            response = await self._client.post(
                self._endpoint,
                params={"key": self._api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise classify_transport(exc, phase="completion") from exc
        if response.status_code >= 400:
            raise classify_status(
                response.status_code,
                f"Gemini API error: {_error_message(response)}",
                phase="completion",
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise InvalidResponseError(
                "Gemini response is not JSON", phase="completion"
            ) from exc
        return extract_text(body)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_payload(
    prompt: str,
    *,
    image_png: bytes | None,
    temperature: float,
    max_output_tokens: int,
) -> dict[str, Any]:
    """Build the ``generateContent`` request body."""
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if image_png is not None:
        parts.append(
            {
                "inline_data": {
                    "mime_type": "image/png",
                    "data": base64.b64encode(image_png).decode("ascii"),
                }
            }
        )
    return {
        "contents": [{"parts": parts}],
        "generation_config": {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        },
    }


def extract_text(body: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise InvalidResponseError."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise InvalidResponseError(
            "Unexpected Gemini response format", phase="completion"
        ) from exc
    if not isinstance(text, str) or not text.strip():
        raise InvalidResponseError("Gemini returned empty text", phase="completion")
    return text


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"{response.status_code} {response.reason_phrase}"
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if message:
            return f"{response.status_code} {message}"
    return f"{response.status_code} {response.reason_phrase}"
