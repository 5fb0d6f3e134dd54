"""Configuration management for DAC."""

from datetime import datetime

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dac.core.constants import API_BASE_URL, APIConstants, CacheLimits


class Config(BaseSettings):
    """Application configuration."""

    api_url: str = Field(default=API_BASE_URL, alias="DAC_API_URL", description="Admin backend base URL")
    api_token: SecretStr | None = Field(default=None, alias="DAC_API_TOKEN", description="Admin bearer token")
    token_expires_at: datetime | None = Field(
        default=None,
        alias="DAC_TOKEN_EXPIRES_AT",
        description="Expiry of the bearer token (ISO 8601)",
    )
    request_timeout: float = Field(
        default=APIConstants.REQUEST_TIMEOUT,
        alias="DAC_REQUEST_TIMEOUT",
        description="Per-request timeout in seconds",
    )
    page_size: int = Field(
        default=APIConstants.DEFAULT_PAGE_SIZE,
        alias="DAC_PAGE_SIZE",
        description="Default list page size",
    )

    # Cache Configuration
    cache_max_entries: int = Field(
        default=CacheLimits.MAX_ENTRIES,
        alias="DAC_CACHE_MAX_ENTRIES",
        description="Maximum number of cached list pages",
    )
    stale_after_seconds: float = Field(
        default=CacheLimits.STALE_AFTER_SECONDS,
        alias="DAC_STALE_AFTER",
        description="Age after which a cached page is refreshed in the background",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    @field_validator("api_url")
    @classmethod
    def strip_api_suffix(cls, v: str) -> str:
        """Endpoints carry their own /admin prefix, so drop a trailing /api."""
        v = v.rstrip("/")
        if v.endswith("/api"):
            v = v[: -len("/api")]
        return v

    @field_validator("page_size")
    @classmethod
    def clamp_page_size(cls, v: int) -> int:
        return max(1, min(v, APIConstants.MAX_PAGE_SIZE))


def load_config() -> Config:
    """Load configuration from environment and .env file."""
    return Config()
