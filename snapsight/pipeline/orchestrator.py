"""Drives capture -> upload -> analyze runs and publishes their outcome.

At most one run is in flight. Each run remembers the generation it started
in; ``reset()`` bumps the generation, so a run that finishes afterwards
publishes nothing.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from snapsight.analysis.analyzer import ImageAnalyzer
from snapsight.analysis.factory import AnalyzerFactory
from snapsight.capture.base import BaseCaptureProvider
from snapsight.capture.mss_adapter import MssCaptureProvider
from snapsight.capture.models import CapturedImage
from snapsight.config.settings import Settings
from snapsight.config.store import ConfigKey, ConfigStore
from snapsight.errors import (
    BadRequestError,
    BusyError,
    ConfigurationError,
    InternalError,
    SnapsightError,
)
from snapsight.logging.logger import Log
from snapsight.pipeline.models import EventType, PipelineEvent, PipelineState
from snapsight.pipeline.pipeline import PipelineContext, PipelineStep
from snapsight.pipeline.steps import (
    AnalyzeImageStep,
    AnalyzeTextStep,
    UploadStep,
    ValidateConfigStep,
)
from snapsight.storage.uploader import UploadClient

Listener = Callable[[PipelineEvent], None]


class Subscription:
    """Handle returned by ``Orchestrator.subscribe``."""

    def __init__(self, listeners: list[Listener], listener: Listener) -> None:
        self._listeners = listeners
        self._listener = listener

    def unsubscribe(self) -> None:
        if self._listener in self._listeners:
            self._listeners.remove(self._listener)


class Orchestrator:
    """Runs the image and text pipelines and owns the pipeline state."""

    def __init__(
        self,
        *,
        capture_provider: BaseCaptureProvider,
        image_steps: Sequence[PipelineStep],
        text_steps: Sequence[PipelineStep],
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._capture_provider = capture_provider
        self._image_steps = list(image_steps)
        self._text_steps = list(text_steps)
        self._settings = settings
        self._sleep = sleep
        self._listeners: list[Listener] = []
        self._state = PipelineState.IDLE
        self._generation = 0
        self._in_flight = False
        self._capturing = False
        self._pending_image: CapturedImage | None = None
        self._last_result: str | None = None
        self._last_error: SnapsightError | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def pending_image(self) -> CapturedImage | None:
        return self._pending_image

    @property
    def last_result(self) -> str | None:
        return self._last_result

    @property
    def last_error(self) -> SnapsightError | None:
        return self._last_error

    def is_busy(self) -> bool:
        return self._in_flight or self._capturing

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self._listeners, listener)

    async def capture(self) -> CapturedImage | None:
        """Capture the screen and keep the image pending for analysis.

        Returns None if a reset happened while capturing.
        """
        self._guard_busy()
        generation = self._generation
        self._capturing = True
        self._set_state(PipelineState.READY)
        try:
            image = await self._capture_provider.capture()
        except SnapsightError as exc:
            if generation == self._generation:
                self._fail(exc)
            raise
        except Exception as exc:
            error = _internal_error(exc, "capture")
            if generation == self._generation:
                self._fail(error)
            raise error from exc
        finally:
            if generation == self._generation:
                self._capturing = False
        if generation != self._generation:
            return None
        self.accept_image(image)
        return image

    def accept_image(self, image: CapturedImage) -> None:
        """Make an already captured image the pending one."""
        self._guard_busy()
        self._pending_image = image
        self._set_state(PipelineState.READY)
        self._emit(
            EventType.CAPTURE_READY,
            path=str(image.path) if image.path else None,
            size=len(image.data),
        )

    async def analyze_screenshot(self, instructions: str = "") -> str | None:
        """Upload the pending image and analyze it.

        Returns the analysis text, or None when a reset made the run stale.
        """
        self._guard_busy()
        if self._pending_image is None:
            error = BadRequestError("Capture a screenshot first", phase="analyze")
            self._emit(EventType.ERROR, code=error.code, message=error.detail)
            raise error
        context = PipelineContext(
            mode="image",
            instructions=instructions,
            image=self._pending_image,
        )
        return await self._run(self._image_steps, context)

    async def analyze_text(self, prompt: str) -> str | None:
        """Analyze a problem given as text."""
        self._guard_busy()
        context = PipelineContext(mode="text", instructions=prompt)
        return await self._run(self._text_steps, context)

    def reset(self) -> None:
        """Return to Idle immediately; any in-flight run is ignored from now on."""
        self._generation += 1
        self._in_flight = False
        self._capturing = False
        self._pending_image = None
        self._last_result = None
        self._last_error = None
        self._set_state(PipelineState.IDLE)
        Log.info("Pipeline context reset")

    async def _run(self, steps: Sequence[PipelineStep], context: PipelineContext) -> str | None:
        generation = self._generation
        self._in_flight = True
        Log.info(f"Starting {context.mode} run")
        try:
            for step in steps:
                if generation != self._generation:
                    Log.info("Run abandoned after reset")
                    return None
                if step.state is not None:
                    self._set_state(step.state)
                context = await step.run(context)

            if generation != self._generation:
                Log.info("Discarding result of a run that was reset")
                return None
            self._publish(context.result)
            await self._sleep(self._settings.idle_reset_delay_seconds)
            if generation == self._generation:
                self._set_state(PipelineState.IDLE)
            return context.result
        except SnapsightError as exc:
            if generation != self._generation:
                Log.info(f"Ignoring failure of a run that was reset: {exc}")
                return None
            if isinstance(exc, ConfigurationError) and exc.missing:
                Log.warning(str(exc))
                self._emit(EventType.CONFIG_REQUIRED, missing=exc.missing)
                raise
            self._fail(exc)
            raise
        except Exception as exc:
            if generation != self._generation:
                Log.info(f"Ignoring failure of a run that was reset: {exc}")
                return None
            error = _internal_error(exc, context.mode)
            Log.exception(f"Unexpected failure in {context.mode} run: {exc}")
            self._fail(error)
            raise error from exc
        finally:
            if generation == self._generation:
                self._in_flight = False

    def _publish(self, result: str) -> None:
        self._last_result = result
        self._last_error = None
        self._pending_image = None
        self._emit(EventType.RESULT_READY, text=result)
        Log.info("Analysis result published")

    def _guard_busy(self) -> None:
        if not self.is_busy():
            return
        error = BusyError("A run is already in progress", phase="trigger")
        Log.warning(str(error))
        self._emit(EventType.ERROR, code=error.code, message=error.detail)
        raise error

    def _fail(self, exc: SnapsightError) -> None:
        self._last_error = exc
        self._set_state(PipelineState.ERROR)
        self._emit(EventType.ERROR, code=exc.code, message=exc.detail)
        Log.error(f"Run failed: {exc}")

    def _set_state(self, state: PipelineState) -> None:
        if state == self._state:
            return
        self._state = state
        self._emit(EventType.STATE_CHANGED, state=state.value)

    def _emit(self, event_type: EventType, **payload: object) -> None:
        event = PipelineEvent(type=event_type, payload=dict(payload))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                Log.exception(f"Event listener failed on {event_type.value}: {exc}")


def _internal_error(exc: Exception, phase: str) -> InternalError:
    return InternalError(f"{type(exc).__name__}: {exc}", phase=phase)


class LazyAnalyzer:
    """Builds the analyzer on first use so a key saved later is picked up."""

    def __init__(self, settings: Settings, config_store: ConfigStore) -> None:
        self._settings = settings
        self._config_store = config_store
        self._analyzer: ImageAnalyzer | None = None

    async def __call__(self) -> ImageAnalyzer:
        if self._analyzer is None:
            self._analyzer = await AnalyzerFactory.create_from_store(
                self._settings, self._config_store
            )
        return self._analyzer

    async def aclose(self) -> None:
        if self._analyzer is not None:
            await self._analyzer.aclose()
            self._analyzer = None


def analysis_required_keys(settings: Settings) -> tuple[ConfigKey, ...]:
    """Config keys the configured analysis provider needs; the example provider needs none."""
    if settings.analysis_provider.lower() == "example":
        return ()
    return (ConfigKey.ANALYSIS_API_KEY,)


def build_orchestrator(
    settings: Settings,
    config_store: ConfigStore | None = None,
) -> tuple[Orchestrator, UploadClient, LazyAnalyzer]:
    """Build an Orchestrator with the real capture, storage, and analysis services."""
    store = config_store or ConfigStore(settings.config_store_path)
    uploader = UploadClient(settings=settings, config_store=store)
    analyzer = LazyAnalyzer(settings, store)
    analysis_keys = analysis_required_keys(settings)
    image_steps: list[PipelineStep] = [
        ValidateConfigStep(store, analysis_keys + (ConfigKey.STORAGE_URL, ConfigKey.STORAGE_KEY)),
        UploadStep(uploader),
        AnalyzeImageStep(analyzer),
    ]
    text_steps: list[PipelineStep] = [
        ValidateConfigStep(store, analysis_keys),
        AnalyzeTextStep(analyzer),
    ]
    orchestrator = Orchestrator(
        capture_provider=MssCaptureProvider(settings.capture_dir),
        image_steps=image_steps,
        text_steps=text_steps,
        settings=settings,
    )
    return orchestrator, uploader, analyzer
