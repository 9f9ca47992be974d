"""Multimodal analysis of uploaded screenshots and text-only problems."""

from pathlib import Path

import httpx

from snapsight.analysis.cache import ResponseCache, fingerprint
from snapsight.analysis.client_base import BaseVisionClient
from snapsight.analysis.prompt_loader import (
    build_image_prompt,
    build_text_prompt,
    load_base_prompt,
)
from snapsight.config.settings import Settings
from snapsight.errors import (
    BadRequestError,
    ImageTooLargeError,
    SnapsightError,
    classify_status,
    classify_transport,
)
from snapsight.logging.logger import Log
from snapsight.net.retry import RetryPolicy, with_retry


class ImageAnalyzer:
    """Builds prompts, fetches images, and caches completions per fingerprint."""

    def __init__(
        self,
        *,
        client: BaseVisionClient,
        settings: Settings,
        prompt_path: Path | None = None,
        retry: RetryPolicy | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._base_prompt = load_base_prompt(prompt_path)
        self._retry = retry or RetryPolicy(
            max_retries=settings.max_retries,
            base_delay=settings.retry_delay_seconds,
        )
        self._http = http or httpx.AsyncClient()
        self._owns_http = http is None
        self._cache = ResponseCache(settings.analysis_cache_size)

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def analyze_image(self, url: str, instructions: str = "") -> str:
        """Analyze the image behind ``url`` with optional extra instructions.

        Raises:
            BadRequestError: if ``url`` is empty.
            ImageTooLargeError: if the fetched image exceeds ``max_image_bytes``.
            SnapsightError: classified failure of the fetch or completion phase.
        """
        if not url:
            raise BadRequestError("Image URL is required", phase="analyze")
        key = fingerprint(url, instructions)
        cached = self._cache.get(key)
        if cached is not None:
            Log.debug("Returning cached analysis for image")
            return cached

        image_png: bytes | None = None
        image_url: str | None = None
        if self._client.accepts_image_url:
            image_url = url
        else:
            image_png = await with_retry(
                lambda: self._fetch_image(url), self._retry, phase="fetch"
            )
            Log.info(f"Fetched {len(image_png)} bytes for analysis")

        prompt = build_image_prompt(self._base_prompt, instructions)
        text = await self._complete(prompt, image_png=image_png, image_url=image_url)
        self._cache.put(key, text)
        return text

    async def analyze_text_only(self, prompt: str) -> str:
        """Solve a problem given as text, without any image."""
        if not prompt or not prompt.strip():
            raise BadRequestError("Problem text is required", phase="analyze")
        key = fingerprint(prompt)
        cached = self._cache.get(key)
        if cached is not None:
            Log.debug("Returning cached analysis for text prompt")
            return cached

        text = await self._complete(build_text_prompt(self._base_prompt, prompt))
        self._cache.put(key, text)
        return text

    def clear_cache(self) -> None:
        self._cache.clear()
        Log.info("Analysis cache cleared")

    async def aclose(self) -> None:
        await self._client.aclose()
        if self._owns_http:
            await self._http.aclose()

    async def _complete(
        self,
        prompt: str,
        *,
        image_png: bytes | None = None,
        image_url: str | None = None,
    ) -> str:
        async def _call() -> str:
            return await self._client.generate(
                prompt=prompt,
                temperature=self._settings.analysis_temperature,
                max_output_tokens=self._settings.analysis_max_output_tokens,
                image_png=image_png,
                image_url=image_url,
            )

        try:
            text = await with_retry(_call, self._retry, phase="completion")
        except SnapsightError as exc:
            Log.error(f"Analysis failed: {exc}")
            raise
        Log.info(f"Analysis complete: {len(text)} chars")
        return text

    async def _fetch_image(self, url: str) -> bytes:
        try:
            response = await self._http.get(
                url, timeout=self._settings.image_fetch_timeout_seconds
            )
        except httpx.TransportError as exc:
            raise classify_transport(exc, phase="fetch") from exc
        if response.status_code >= 400:
            raise classify_status(
                response.status_code,
                f"image fetch failed: {response.status_code} {response.reason_phrase}",
                phase="fetch",
            )
        data = response.content
        if len(data) > self._settings.max_image_bytes:
            raise ImageTooLargeError(
                f"Image too large for analysis: {len(data)} bytes "
                f"(max {self._settings.max_image_bytes})",
                phase="fetch",
            )
        return data
