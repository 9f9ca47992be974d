"""Object-store adapter for the Supabase Storage REST API."""

from typing import Any
from urllib.parse import quote

import httpx

from snapsight.errors import (
    InvalidResponseError,
    SnapsightError,
    classify_status,
    classify_transport,
)
from snapsight.storage.base import BaseObjectStore


class SupabaseStorageAdapter(BaseObjectStore):
    """Talks to ``{project_url}/storage/v1`` with the project API key."""

    def __init__(
        self,
        *,
        project_url: str,
        api_key: str,
        timeout_seconds: float = 30,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = project_url.rstrip("/") + "/storage/v1"
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "apikey": api_key,
        }
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None

    async def bucket_exists(self, bucket: str) -> bool:
        try:
            await self._request("GET", f"/bucket/{quote(bucket)}", phase="bucket")
        except SnapsightError as exc:
            if exc.status in (400, 404):
                return False
            raise
        return True

    async def put(
        self,
        bucket: str,
        name: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> None:
        await self._request(
            "POST",
            f"/object/{quote(bucket)}/{quote(name)}",
            phase="upload",
            content=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
                "cache-control": "max-age=3600",
            },
        )

    async def create_signed_url(self, bucket: str, name: str, expires_in: int) -> str:
        response = await self._request(
            "POST",
            f"/object/sign/{quote(bucket)}/{quote(name)}",
            phase="sign",
            json={"expiresIn": expires_in},
        )
        payload = _json_or_none(response)
        signed = payload.get("signedURL") if isinstance(payload, dict) else None
        if not isinstance(signed, str) or not signed:
            raise InvalidResponseError("Signed URL missing from storage response", phase="sign")
        if signed.startswith("http://") or signed.startswith("https://"):
            return signed
        return f"{self._base_url}/{signed.lstrip('/')}"

    async def list_names(self, bucket: str) -> list[str]:
        response = await self._request(
            "POST",
            f"/object/list/{quote(bucket)}",
            phase="list",
            json={
                "prefix": "",
                "limit": 1000,
                "offset": 0,
                "sortBy": {"column": "name", "order": "asc"},
            },
        )
        payload = _json_or_none(response)
        if not isinstance(payload, list):
            raise InvalidResponseError("Object listing must be a JSON array", phase="list")
        return [item["name"] for item in payload if isinstance(item, dict) and "name" in item]

    async def remove(self, bucket: str, names: list[str]) -> None:
        await self._request(
            "DELETE",
            f"/object/{quote(bucket)}",
            phase="remove",
            json={"prefixes": names},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        phase: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                self._base_url + path,
                headers={**self._headers, **(headers or {})},
                **kwargs,
            )
        except httpx.TransportError as exc:
            raise classify_transport(exc, phase=phase) from exc
        if response.status_code >= 400:
            raise classify_status(
                _effective_status(response),
                f"storage {phase} failed: {_error_detail(response)}",
                phase=phase,
            )
        return response


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _effective_status(response: httpx.Response) -> int:
    """Storage reports some errors (e.g. duplicates) as 400 with the real code in the body."""
    payload = _json_or_none(response)
    if isinstance(payload, dict):
        body_status = str(payload.get("statusCode", ""))
        if body_status.isdigit():
            return int(body_status)
    return response.status_code


def _error_detail(response: httpx.Response) -> str:
    payload = _json_or_none(response)
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return f"{response.status_code} {message}"
    return f"{response.status_code} {response.reason_phrase}"
