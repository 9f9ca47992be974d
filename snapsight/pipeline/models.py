from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PipelineState(str, Enum):
    IDLE = "idle"
    READY = "ready"  # capturing, or a captured image is pending
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    ERROR = "error"


class EventType(str, Enum):
    CAPTURE_READY = "capture-ready"
    RESULT_READY = "result-ready"
    ERROR = "error"
    STATE_CHANGED = "state-changed"
    CONFIG_REQUIRED = "config-required"


@dataclass(frozen=True)
class PipelineEvent:
    """Notification sent from the orchestrator to the presentation layer."""

    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)
