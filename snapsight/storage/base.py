from abc import ABC, abstractmethod


class BaseObjectStore(ABC):
    """Contract for object-store adapters."""

    @abstractmethod
    async def bucket_exists(self, bucket: str) -> bool:
        """Return True when the bucket is reachable with the current credentials."""

    @abstractmethod
    async def put(
        self,
        bucket: str,
        name: str,
        data: bytes,
        *,
        content_type: str,
        upsert: bool = False,
    ) -> None:
        """Store ``data`` under ``name``.

        Raises:
            SnapsightError: classified transport or HTTP failure.
        """

    @abstractmethod
    async def create_signed_url(self, bucket: str, name: str, expires_in: int) -> str:
        """Return a URL granting read access to ``name`` for ``expires_in`` seconds."""

    @abstractmethod
    async def list_names(self, bucket: str) -> list[str]:
        """Return object names at the bucket root."""

    @abstractmethod
    async def remove(self, bucket: str, names: list[str]) -> None:
        """Delete the named objects."""

    async def aclose(self) -> None:
        """Release network resources."""
