import json
from pathlib import Path

import httpx
import pytest

from snapsight.config.settings import Settings
from snapsight.config.store import ConfigStore
from snapsight.storage.supabase_adapter import SupabaseStorageAdapter

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture()
def png_bytes() -> bytes:
    """A buffer carrying the PNG signature followed by arbitrary payload."""
    return PNG_SIGNATURE + b"\x00\x00\x00\rIHDR" + bytes(range(64))


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        config_store_path=tmp_path / "config.json",
        capture_dir=tmp_path / "captures",
        retry_delay_seconds=1.0,
        idle_reset_delay_seconds=0,
    )


@pytest.fixture()
def config_store(settings: Settings) -> ConfigStore:
    """A store holding every required credential."""
    settings.config_store_path.write_text(
        json.dumps(
            {
                "analysis_api_key": "test-key",
                "storage_url": "https://project.supabase.co",
                "storage_key": "service-key",
            }
        ),
        encoding="utf-8",
    )
    return ConfigStore(settings.config_store_path)


@pytest.fixture()
def empty_config_store(settings: Settings) -> ConfigStore:
    return ConfigStore(settings.config_store_path)


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class FakeStorage:
    """In-memory Supabase Storage server served through httpx.MockTransport.

    ``upload_failures``, ``sign_failures`` and ``bucket_failures`` hold outcomes
    for the next matching requests: an int is answered as that HTTP status, an
    exception is raised from the transport. ``lost_upload_responses`` counts
    uploads that are stored but whose response never arrives.
    """

    PROJECT_URL = "https://project.supabase.co"
    API_KEY = "service-key"

    def __init__(self, buckets: tuple[str, ...] = ("screenshots",)) -> None:
        self.buckets = set(buckets)
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.requests: list[httpx.Request] = []
        self.upload_failures: list[int | Exception] = []
        self.sign_failures: list[int | Exception] = []
        self.bucket_failures: list[int | Exception] = []
        self.lost_upload_responses = 0
        self.transport = httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    def adapter(self) -> SupabaseStorageAdapter:
        return SupabaseStorageAdapter(
            project_url=self.PROJECT_URL,
            api_key=self.API_KEY,
            client=self.client(),
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/storage/v1")
        parts = path.strip("/").split("/")

        if parts[0] == "bucket":
            outcome = _next_failure(self.bucket_failures)
            if outcome is not None:
                return outcome
            if parts[1] in self.buckets:
                return httpx.Response(200, json={"id": parts[1], "name": parts[1]})
            return _storage_error(404, "Bucket not found")

        if parts[:2] == ["object", "sign"]:
            key = (parts[2], "/".join(parts[3:]))
            if request.method == "GET":
                if request.url.params.get("token") != _token(key[1]) or key not in self.objects:
                    return _storage_error(400, "Invalid signature")
                return httpx.Response(
                    200,
                    content=self.objects[key],
                    headers={"Content-Type": self.content_types[key]},
                )
            outcome = _next_failure(self.sign_failures)
            if outcome is not None:
                return outcome
            if key not in self.objects:
                return _storage_error(404, "Object not found")
            signed = f"/object/sign/{key[0]}/{key[1]}?token={_token(key[1])}"
            return httpx.Response(200, json={"signedURL": signed})

        if parts[:2] == ["object", "list"]:
            names = sorted(name for bucket, name in self.objects if bucket == parts[2])
            return httpx.Response(200, json=[{"name": name} for name in names])

        if parts[0] == "object" and request.method == "DELETE":
            prefixes = json.loads(request.content)["prefixes"]
            for name in prefixes:
                self.objects.pop((parts[1], name), None)
            return httpx.Response(200, json=[{"name": name} for name in prefixes])

        if parts[0] == "object" and request.method == "POST":
            outcome = _next_failure(self.upload_failures)
            if outcome is not None:
                return outcome
            key = (parts[1], "/".join(parts[2:]))
            if key in self.objects and request.headers.get("x-upsert") != "true":
                return _storage_error(409, "The resource already exists")
            self.objects[key] = request.content
            self.content_types[key] = request.headers.get("Content-Type", "")
            if self.lost_upload_responses:
                self.lost_upload_responses -= 1
                raise httpx.ReadTimeout("response lost", request=request)
            return httpx.Response(200, json={"Key": f"{key[0]}/{key[1]}"})

        return httpx.Response(404, json={"message": "route not found"})


def _token(name: str) -> str:
    return f"tok-{name}"


def _storage_error(status: int, message: str) -> httpx.Response:
    # Storage answers most errors with 400 and the real code in the body.
    return httpx.Response(
        400, json={"statusCode": str(status), "error": message, "message": message}
    )


def _next_failure(queue: list[int | Exception]) -> httpx.Response | None:
    if not queue:
        return None
    outcome = queue.pop(0)
    if isinstance(outcome, Exception):
        raise outcome
    return httpx.Response(outcome, json={"message": f"injected {outcome}"})


@pytest.fixture()
def fake_storage() -> FakeStorage:
    return FakeStorage()
