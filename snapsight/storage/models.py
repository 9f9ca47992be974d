from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UploadRecord:
    """A successful upload kept in the recent-upload history."""

    url: str
    file_name: str
    created_at: datetime


@dataclass
class UploadMetrics:
    """Process-lifetime upload counters."""

    total_uploads: int = 0
    successful_uploads: int = 0
    failed_uploads: int = 0
    total_upload_time_ms: float = 0.0

    @property
    def average_upload_time_ms(self) -> float:
        if self.successful_uploads == 0:
            return 0.0
        return self.total_upload_time_ms / self.successful_uploads
