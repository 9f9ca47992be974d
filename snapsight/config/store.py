"""Persistent key/value store for credentials.

A JSON document on disk, read and written through an async interface so the
event loop never blocks on file I/O.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from snapsight.errors import ConfigurationError
from snapsight.logging.logger import Log


class ConfigKey(str, Enum):
    """Credential keys recognized by the services."""

    ANALYSIS_API_KEY = "analysis_api_key"
    STORAGE_URL = "storage_url"
    STORAGE_KEY = "storage_key"


REQUIRED_KEYS: tuple[ConfigKey, ...] = (
    ConfigKey.ANALYSIS_API_KEY,
    ConfigKey.STORAGE_URL,
    ConfigKey.STORAGE_KEY,
)


@dataclass(frozen=True)
class Credentials:
    """Snapshot of the stored credentials."""

    analysis_api_key: str | None = None
    storage_url: str | None = None
    storage_key: str | None = None


class ConfigStore:
    """JSON file-backed configuration store."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> str | None:
        """Return the stored value or None when the key is absent or empty."""
        self._check_key(key)
        data = await asyncio.to_thread(self._read)
        value = data.get(_key_name(key))
        if value is None or value == "":
            return None
        return str(value)

    async def set(self, key: str, value: str) -> bool:
        """Persist a value and return True once it is on disk."""
        self._check_key(key)
        await asyncio.to_thread(self._write_key, _key_name(key), value)
        Log.info(f"Config key '{_key_name(key)}' updated")
        return True

    async def missing(self, keys: tuple[ConfigKey, ...] = REQUIRED_KEYS) -> list[str]:
        """Return the names of keys that have no value."""
        data = await asyncio.to_thread(self._read)
        return [key.value for key in keys if not data.get(key.value)]

    async def credentials(self) -> Credentials:
        data = await asyncio.to_thread(self._read)
        return Credentials(
            analysis_api_key=data.get(ConfigKey.ANALYSIS_API_KEY.value) or None,
            storage_url=data.get(ConfigKey.STORAGE_URL.value) or None,
            storage_key=data.get(ConfigKey.STORAGE_KEY.value) or None,
        )

    @staticmethod
    def _check_key(key: object) -> None:
        if not isinstance(key, str):
            raise TypeError(f"Config key must be a string, got {type(key).__name__}")

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read config store {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config store {self._path} must hold a JSON object")
        return raw

    def _write_key(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)


def _key_name(key: str) -> str:
    return key.value if isinstance(key, ConfigKey) else key
