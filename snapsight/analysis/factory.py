from snapsight.analysis.analyzer import ImageAnalyzer
from snapsight.analysis.client_base import BaseVisionClient
from snapsight.analysis.example_client_adapter import ExampleClientAdapter
from snapsight.analysis.gemini_client_adapter import GeminiClientAdapter
from snapsight.analysis.openai_client_adapter import OpenAIClientAdapter
from snapsight.config.settings import Settings
from snapsight.config.store import ConfigKey, ConfigStore
from snapsight.errors import ConfigurationError, NotInitializedError


class AnalyzerFactory:
    """Creates the configured analyzer and its provider client."""

    PROVIDERS = ("gemini", "openai", "example")

    @classmethod
    def create(cls, settings: Settings, api_key: str | None) -> ImageAnalyzer:
        """Create an analyzer for ``settings.analysis_provider``.

        Raises:
            ConfigurationError: unknown provider.
            NotInitializedError: the provider needs an API key and none is set.
        """
        return ImageAnalyzer(client=cls.create_client(settings, api_key), settings=settings)

    @classmethod
    async def create_from_store(cls, settings: Settings, config_store: ConfigStore) -> ImageAnalyzer:
        api_key = await config_store.get(ConfigKey.ANALYSIS_API_KEY)
        return cls.create(settings, api_key)

    @classmethod
    def create_client(cls, settings: Settings, api_key: str | None) -> BaseVisionClient:
        provider = settings.analysis_provider.lower()
        if provider not in cls.PROVIDERS:
            raise ConfigurationError(
                f"Unknown analysis provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
            )
        if provider == "example":
            return ExampleClientAdapter()
        if not api_key:
            raise NotInitializedError(
                f"API key for provider '{provider}' is not configured", phase="analyze"
            )
        if provider == "openai":
            return OpenAIClientAdapter(
                api_key=api_key,
                model=settings.openai_model_name,
                timeout_seconds=settings.completion_timeout_seconds,
                base_url=settings.openai_base_url,
            )
        return GeminiClientAdapter(
            api_key=api_key,
            endpoint=settings.gemini_endpoint,
            timeout_seconds=settings.completion_timeout_seconds,
        )
