"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_bucket: str = "fan-moments"
    fal_key: str
    fal_request_timeout: float = 300.0
    image_model: str = "fal-ai/flux/dev"
    video_model: str = "fal-ai/kling-video/v1/standard/image-to-video"
    image_retry_attempts: int = 3
    image_retry_delay: float = 2.0
    video_retry_attempts: int = 3
    video_retry_delay: float = 5.0
    progress_poll_interval: float = 1.0
    progress_max_wait: float = 60.0
    session_retention_days: int = 7
    admin_token: str
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
