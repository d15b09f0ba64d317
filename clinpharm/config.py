"""
Configuration management for AI Clinical Pharmacist.

Uses Pydantic Settings for type-safe environment variable handling.
All configuration is loaded from environment variables or .env file.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "AI Clinical Pharmacist"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("gemini_api_key", "api_key")
    )
    gemini_model: str = "gemini-3-pro-preview"

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_per_minute: int = 30

    # ==========================================================================
    # Input Limits
    # ==========================================================================
    max_file_size_mb: int = 10
    allowed_image_extensions: str = ".png,.jpg,.jpeg,.gif,.webp,.bmp"
    max_image_dimension: int = 3072
    max_text_chars: int = 20000

    # ==========================================================================
    # Browser Dictation
    # ==========================================================================
    speech_language: str = "en-US"

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def max_file_size_bytes(self) -> int:
        """Maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def image_extensions(self) -> list[str]:
        """List of allowed image extensions."""
        return [ext.strip() for ext in self.allowed_image_extensions.split(",")]

    @property
    def llm_configured(self) -> bool:
        """Whether an API key for the model provider is present."""
        return bool(self.gemini_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
