"""Configuration management using pydantic-settings."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GCP settings. An empty project id disables the Gemini backends
    # (vision profiling and real image generation).
    gcp_project_id: str = ""
    vertex_ai_location: str = "us-central1"

    # Gemini models
    image_model: str = "gemini-3-pro-image-preview"
    vision_model: str = "gemini-3-flash-preview"
    enable_vision_profiling: bool = True
    image_api_attempts: int = 2

    # Generated image storage
    images_dir: str = "data/images"
    images_url_prefix: str = "/images"

    # Story pipeline
    immediate_cache_ttl_seconds: float = 600.0
    assembly_timeout_seconds: float = 300.0
    character_name: str = "Maya"

    # Application settings
    app_name: str = "storybook-illustrator"

    # Server settings
    backend_host: str = "localhost"
    backend_port: int = 8000
    frontend_port: int = 3000

    @property
    def gemini_configured(self) -> bool:
        """True when a GCP project is set and Gemini calls can be attempted."""
        return bool(self.gcp_project_id)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
