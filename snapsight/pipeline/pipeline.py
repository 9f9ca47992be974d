from abc import ABC, abstractmethod
from dataclasses import dataclass

from snapsight.capture.models import CapturedImage
from snapsight.pipeline.models import PipelineState


@dataclass(slots=True)
class PipelineContext:
    mode: str  # "image" or "text"
    instructions: str = ""
    image: CapturedImage | None = None
    upload_url: str = ""
    result: str = ""


class PipelineStep(ABC):
    # State the orchestrator enters before running the step; None keeps the current one.
    state: PipelineState | None = None

    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
