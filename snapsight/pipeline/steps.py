from collections.abc import Awaitable, Callable

from snapsight.analysis.analyzer import ImageAnalyzer
from snapsight.config.store import ConfigKey, ConfigStore
from snapsight.errors import BadRequestError, ConfigurationError
from snapsight.logging.logger import Log
from snapsight.pipeline.models import PipelineState
from snapsight.pipeline.pipeline import PipelineContext, PipelineStep
from snapsight.storage.uploader import UploadClient

AnalyzerProvider = Callable[[], Awaitable[ImageAnalyzer]]


class ValidateConfigStep(PipelineStep):
    def __init__(self, config_store: ConfigStore, required: tuple[ConfigKey, ...]) -> None:
        self._config_store = config_store
        self._required = required

    async def run(self, context: PipelineContext) -> PipelineContext:
        missing = await self._config_store.missing(self._required)
        if missing:
            raise ConfigurationError(
                f"Configuration incomplete, missing: {', '.join(missing)}",
                missing=missing,
            )
        return context


class UploadStep(PipelineStep):
    state = PipelineState.UPLOADING

    def __init__(self, uploader: UploadClient) -> None:
        self._uploader = uploader

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.image is None:
            raise BadRequestError("Capture a screenshot first", phase="upload")
        context.upload_url = await self._uploader.upload(context.image.data)
        Log.info(f"Uploaded {len(context.image.data)} bytes")
        return context


class AnalyzeImageStep(PipelineStep):
    state = PipelineState.ANALYZING

    def __init__(self, analyzer_provider: AnalyzerProvider) -> None:
        self._analyzer_provider = analyzer_provider

    async def run(self, context: PipelineContext) -> PipelineContext:
        if not context.upload_url:
            raise ValueError("PipelineContext.upload_url must be set before analysis")
        analyzer = await self._analyzer_provider()
        context.result = await analyzer.analyze_image(context.upload_url, context.instructions)
        return context


class AnalyzeTextStep(PipelineStep):
    state = PipelineState.ANALYZING

    def __init__(self, analyzer_provider: AnalyzerProvider) -> None:
        self._analyzer_provider = analyzer_provider

    async def run(self, context: PipelineContext) -> PipelineContext:
        analyzer = await self._analyzer_provider()
        context.result = await analyzer.analyze_text_only(context.instructions)
        return context
