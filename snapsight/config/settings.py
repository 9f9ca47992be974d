import tempfile
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Credentials are not settings; they live in the ConfigStore.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"
    log_file: Path | None = None

    config_store_path: Path = Path.home() / ".config" / "snapsight" / "config.json"
    capture_dir: Path = Path(tempfile.gettempdir()) / "snapsight"

    analysis_provider: str = "gemini"
    gemini_endpoint: str = (
        "https://generativelanguage.googleapis.com/v1/models/"
        "gemini-2.0-flash-lite:generateContent"
    )
    openai_model_name: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    analysis_temperature: float = Field(default=0.2, ge=0.0, le=1.0)
    analysis_max_output_tokens: int = Field(default=2048, gt=0)
    analysis_cache_size: int = Field(default=10, gt=0)
    image_fetch_timeout_seconds: float = 30
    completion_timeout_seconds: float = 60
    max_image_bytes: int = 20 * _MIB

    storage_bucket: str = "screenshots"
    signed_url_expiry_seconds: int = 3600
    max_upload_bytes: int = 10 * _MIB
    storage_timeout_seconds: float = 30

    max_retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    recent_uploads_limit: int = Field(default=5, gt=0)
    idle_reset_delay_seconds: float = Field(default=1.5, ge=0.0)
    cleanup_older_than_days: int = 7
