"""Object upload client: validate, store, sign, and keep upload bookkeeping."""

import re
import time
import uuid
from collections import deque
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from snapsight.capture.file_loader import FileLoader
from snapsight.config.settings import Settings
from snapsight.config.store import ConfigKey, ConfigStore
from snapsight.errors import NotInitializedError, ObjectExistsError, SnapsightError
from snapsight.logging.logger import Log
from snapsight.net.retry import RetryPolicy, with_retry
from snapsight.storage.base import BaseObjectStore
from snapsight.storage.models import UploadMetrics, UploadRecord
from snapsight.storage.supabase_adapter import SupabaseStorageAdapter
from snapsight.storage.validator import validate_png

_UPLOAD_NAME_RE = re.compile(r"^screenshot-(\d+)-[0-9a-f]+\.png$")


def generate_file_name(now_ms: int | None = None) -> str:
    """Build a collision-resistant object name from the clock and a random suffix."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"screenshot-{now_ms}-{uuid.uuid4().hex[:8]}.png"


class UploadClient:
    """Uploads PNG screenshots and returns time-limited retrieval URLs."""

    CONTENT_TYPE = "image/png"

    def __init__(
        self,
        *,
        settings: Settings,
        config_store: ConfigStore | None = None,
        store: BaseObjectStore | None = None,
        retry: RetryPolicy | None = None,
        file_loader: FileLoader | None = None,
    ) -> None:
        self._settings = settings
        self._config_store = config_store
        self._store = store
        self._retry = retry or RetryPolicy(
            max_retries=settings.max_retries,
            base_delay=settings.retry_delay_seconds,
        )
        self._file_loader = file_loader or FileLoader()
        self._initialized = False
        self._metrics = UploadMetrics()
        self._recent: deque[UploadRecord] = deque(maxlen=settings.recent_uploads_limit)

    @property
    def bucket(self) -> str:
        return self._settings.storage_bucket

    def is_initialized(self) -> bool:
        return self._initialized and self._store is not None

    async def initialize(self) -> bool:
        """Resolve credentials, build the adapter if needed, and check the bucket.

        Returns False when credentials are missing or rejected, or the bucket
        does not exist.

        Raises:
            TransportError: the bucket check kept failing after retries.
            ServerError: the storage service kept answering 5xx.
        """
        return await self._connect() is not None

    async def _connect(self) -> BaseObjectStore | None:
        store = self._store
        if store is None:
            if self._config_store is None:
                Log.error("Upload client has neither an object store nor a config store")
                return None
            url = await self._config_store.get(ConfigKey.STORAGE_URL)
            key = await self._config_store.get(ConfigKey.STORAGE_KEY)
            if not url or not key:
                Log.error("Storage credentials are not configured")
                return None
            store = SupabaseStorageAdapter(
                project_url=url,
                api_key=key,
                timeout_seconds=self._settings.storage_timeout_seconds,
            )
            self._store = store
        try:
            exists = await with_retry(
                lambda: store.bucket_exists(self.bucket), self._retry, phase="bucket"
            )
        except SnapsightError as exc:
            if exc.retryable:
                raise
            Log.error(f"Storage initialization failed: {exc}")
            return None
        if not exists:
            Log.warning(f"Bucket '{self.bucket}' not found, check the storage configuration")
            return None
        self._initialized = True
        return store

    async def upload(self, image_bytes: bytes) -> str:
        """Validate, store, and sign one PNG buffer.

        Returns:
            A signed retrieval URL valid for ``signed_url_expiry_seconds``.

        Raises:
            NotInitializedError: credentials missing or rejected, or no bucket.
            InvalidFileError: not a PNG, or larger than ``max_upload_bytes``.
            SnapsightError: classified storage failure after retries.
        """
        started = time.perf_counter()
        self._metrics.total_uploads += 1
        try:
            validate_png(image_bytes, self._settings.max_upload_bytes)
            store = await self._ready_store("upload")
            file_name = generate_file_name()
            Log.info(f"Uploading {len(image_bytes)} bytes as {file_name}")

            put_attempts = 0

            async def _put() -> None:
                nonlocal put_attempts
                put_attempts += 1
                try:
                    await store.put(
                        self.bucket,
                        file_name,
                        image_bytes,
                        content_type=self.CONTENT_TYPE,
                        upsert=False,
                    )
                except ObjectExistsError:
                    # On a retry the name can only belong to this upload.
                    if put_attempts == 1:
                        raise
                    Log.warning(f"{file_name} was stored by an earlier attempt")

            async def _sign() -> str:
                return await store.create_signed_url(
                    self.bucket,
                    file_name,
                    self._settings.signed_url_expiry_seconds,
                )

            await with_retry(_put, self._retry, phase="upload")
            signed_url = await with_retry(_sign, self._retry, phase="sign")
        except SnapsightError as exc:
            self._metrics.failed_uploads += 1
            Log.error(f"Upload failed: {exc}")
            raise

        self._metrics.successful_uploads += 1
        self._metrics.total_upload_time_ms += (time.perf_counter() - started) * 1000
        self._recent.append(
            UploadRecord(
                url=signed_url,
                file_name=file_name,
                created_at=datetime.now(timezone.utc),
            )
        )
        Log.info(f"Upload of {file_name} complete")
        return signed_url

    async def upload_file(self, path: Path) -> str:
        """Read a captured image from disk and upload it."""
        data = await self._file_loader.read_bytes(path)
        return await self.upload(data)

    def recent_uploads(self) -> list[UploadRecord]:
        return list(self._recent)

    def metrics(self) -> UploadMetrics:
        return replace(self._metrics)

    def reset_metrics(self) -> None:
        self._metrics = UploadMetrics()

    async def cleanup_old_files(self, older_than_days: int | None = None) -> int:
        """Delete uploads older than ``older_than_days`` and return how many were removed."""
        store = await self._ready_store("cleanup")
        days = self._settings.cleanup_older_than_days if older_than_days is None else older_than_days
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        cutoff_ms = int(cutoff.timestamp() * 1000)

        names = await store.list_names(self.bucket)
        old_names = [name for name in names if _is_older_than(name, cutoff_ms)]
        if not old_names:
            return 0
        await store.remove(self.bucket, old_names)
        Log.info(f"Removed {len(old_names)} uploads older than {days} days")
        return len(old_names)

    async def _ready_store(self, phase: str) -> BaseObjectStore:
        if self._initialized and self._store is not None:
            return self._store
        store = await self._connect()
        if store is None:
            raise NotInitializedError("Upload client not initialized", phase=phase)
        return store

    async def aclose(self) -> None:
        if self._store is not None:
            await self._store.aclose()


def _is_older_than(name: str, cutoff_ms: int) -> bool:
    match = _UPLOAD_NAME_RE.match(name)
    if match is None:
        return False
    return int(match.group(1)) < cutoff_ms
