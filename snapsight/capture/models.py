from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path


@dataclass(frozen=True)
class CapturedImage:
    """Raw screenshot bytes pending upload."""

    data: bytes
    format: str = "png"
    path: Path | None = None
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
