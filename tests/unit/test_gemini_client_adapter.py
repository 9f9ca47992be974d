import asyncio
import base64
import json

import httpx
import pytest

from snapsight.analysis.gemini_client_adapter import (
    GeminiClientAdapter,
    build_payload,
    extract_text,
)
from snapsight.errors import (
    AuthError,
    BadRequestError,
    InvalidResponseError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)

ENDPOINT = "https://generativelanguage.googleapis.com/v1/models/gemini-2.0-flash-lite:generateContent"


def _answer(text: str) -> dict[str, object]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _make_adapter(handler) -> GeminiClientAdapter:
    return GeminiClientAdapter(
        api_key="secret",
        endpoint=ENDPOINT,
        timeout_seconds=60,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _generate(adapter: GeminiClientAdapter, image_png: bytes | None = None) -> str:
    return asyncio.run(
        adapter.generate(
            prompt="explain",
            temperature=0.2,
            max_output_tokens=2048,
            image_png=image_png,
        )
    )


class TestBuildPayload:
    def test_text_only(self) -> None:
        payload = build_payload("hello", image_png=None, temperature=0.2, max_output_tokens=2048)
        assert payload == {
            "contents": [{"parts": [{"text": "hello"}]}],
            "generation_config": {"temperature": 0.2, "max_output_tokens": 2048},
        }

    def test_inline_image_part(self, png_bytes: bytes) -> None:
        payload = build_payload("hello", image_png=png_bytes, temperature=0.2, max_output_tokens=10)
        parts = payload["contents"][0]["parts"]
        assert parts[0] == {"text": "hello"}
        assert parts[1]["inline_data"]["mime_type"] == "image/png"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == png_bytes


class TestExtractText:
    def test_returns_first_part_text(self) -> None:
        assert extract_text(_answer("## Answer")) == "## Answer"

    @pytest.mark.parametrize(
        "body",
        [{}, {"candidates": []}, {"candidates": [{"content": {"parts": []}}]}, None],
    )
    def test_malformed_body(self, body: object) -> None:
        with pytest.raises(InvalidResponseError, match="Unexpected Gemini response format"):
            extract_text(body)

    def test_blank_text(self) -> None:
        with pytest.raises(InvalidResponseError, match="empty text"):
            extract_text(_answer("   "))


class TestGeminiClientAdapter:
    def test_posts_payload_with_key_param(self, png_bytes: bytes) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_answer("done"))

        assert _generate(_make_adapter(handler), png_bytes) == "done"
        request = seen[0]
        assert request.method == "POST"
        assert request.url.params["key"] == "secret"
        assert str(request.url).startswith(ENDPOINT)
        body = json.loads(request.content)
        assert body["contents"][0]["parts"][0]["text"] == "explain"
        assert body["generation_config"]["max_output_tokens"] == 2048

    @pytest.mark.parametrize(
        ("status", "expected"),
        [(400, BadRequestError), (403, AuthError), (429, RateLimitedError), (500, ServerError)],
    )
    def test_status_mapping(self, status: int, expected: type) -> None:
        adapter = _make_adapter(
            lambda request: httpx.Response(status, json={"error": {"message": "nope"}})
        )
        with pytest.raises(expected, match="Gemini API error") as exc_info:
            _generate(adapter)
        assert exc_info.value.status == status
        assert exc_info.value.phase == "completion"

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(RequestTimeoutError):
            _generate(_make_adapter(handler))

    def test_non_json_body(self) -> None:
        adapter = _make_adapter(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(InvalidResponseError, match="not JSON"):
            _generate(adapter)
