from collections import OrderedDict

FINGERPRINT_PREFIX_LENGTH = 50

Fingerprint = tuple[str, str]


def fingerprint(source: str, instructions: str = "") -> Fingerprint:
    """Cache key: the image source (or text prompt) plus the instruction prefix."""
    return (source, instructions[:FINGERPRINT_PREFIX_LENGTH])


class ResponseCache:
    """Bounded insertion-order cache that evicts the single oldest entry when full."""

    def __init__(self, capacity: int = 10) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: OrderedDict[Fingerprint, str] = OrderedDict()

    def get(self, key: Fingerprint) -> str | None:
        return self._entries.get(key)

    def put(self, key: Fingerprint, value: str) -> None:
        if key in self._entries:
            self._entries[key] = value
            return
        if len(self._entries) >= self._capacity:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[Fingerprint]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
