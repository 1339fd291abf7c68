"""Configuration management for Searchlight using Pydantic settings.

Settings are loaded from environment variables and an optional .env file.
Every timeout and cap used by the search pipeline lives here so that a host
application can tune the pipeline without touching code.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EngineName = Literal["disabled", "google", "bing", "baidu", "duckduckgo", "tavily"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Main configuration settings for Searchlight.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Ollama Configuration
    ollama_host: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL used for intent analysis",
    )
    ollama_model: str = Field(
        default="qwen3:30b-a3b",
        description="Model used to classify search intent",
    )
    ollama_timeout: int = Field(
        default=120,
        description="Timeout for Ollama API calls in seconds",
        ge=10,
        le=600,
    )
    ollama_temperature: float = Field(
        default=0.0,
        description="Temperature for intent classification",
        ge=0.0,
        le=2.0,
    )

    # Application Settings
    searchlight_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for the application",
    )
    searchlight_log_file: Path | None = Field(
        default=None,
        description="Optional file path to write JSON logs (defaults to console only)",
    )

    # Engine selection
    search_engine: EngineName = Field(
        default="google",
        description="Search engine used when the caller does not override it",
    )

    # Direct search API
    tavily_api_key: str | None = Field(
        default=None,
        description="Tavily API key; when set, searches bypass the browser entirely",
    )
    tavily_api_host: str = Field(
        default="https://api.tavily.com",
        description="Base URL of the Tavily API",
    )
    tavily_max_results: int = Field(default=5, ge=1, le=20)
    tavily_include_raw_content: bool = Field(
        default=False,
        description="Ask Tavily for full page content instead of summaries",
    )
    tavily_timeout: float = Field(default=30.0, ge=1.0, le=300.0)

    # Browser search
    browser_max_results: int = Field(
        default=8,
        description="Maximum result links taken from a search engine page",
        ge=1,
        le=50,
    )
    browser_search_timeout: float = Field(
        default=15.0,
        description="Seconds allowed for load and extraction before a CAPTCHA is seen",
        gt=0,
    )
    browser_captcha_timeout: float = Field(
        default=120.0,
        description="Seconds a human has to solve a CAPTCHA once it is shown",
        gt=0,
    )
    browser_settle_delay: float = Field(
        default=0.5,
        description="Delay after a reload before re-extracting results",
        ge=0,
    )
    browser_retry_delays: list[float] = Field(
        default=[0.1, 0.2, 0.4, 0.8, 1.5],
        description="Progressive delays between extraction attempts",
        min_length=1,
    )
    browser_headless: bool = Field(
        default=True,
        description="Run the Playwright browser host without a window",
    )

    # Content fetching
    fetch_timeout: float = Field(
        default=8.0,
        description="Per-URL limit in seconds covering connect and body read",
        gt=0,
        le=120,
    )
    fetch_max_chars: int = Field(
        default=10000,
        description="Maximum characters of distilled content kept per page",
        ge=100,
    )
    fetch_max_bytes: int = Field(
        default=200 * 1024,
        description="Maximum response body size in bytes",
        ge=1024,
    )
    fetch_max_url_length: int = Field(default=2048, ge=16)
    fetch_max_candidates: int = Field(default=8, ge=1, le=20)
    fetch_user_agent: str = Field(default=DEFAULT_USER_AGENT)

    # Intent analysis
    intent_history_turns: int = Field(default=6, ge=0, le=50)
    intent_history_chars: int = Field(default=200, ge=20)

    @field_validator("searchlight_log_file", mode="before")
    @classmethod
    def expand_paths(cls, v: str | Path | None) -> Path | None:
        """Expand relative paths to absolute paths."""
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @field_validator("tavily_api_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, v: str | None) -> str | None:
        """Treat an empty key as not configured."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def ollama_base_url(self) -> str:
        """Get the base URL for Ollama API (without /api suffix)."""
        return self.ollama_host.rstrip("/")

    @property
    def has_direct_search_api(self) -> bool:
        """Whether a direct content-search API key is configured."""
        return self.tavily_api_key is not None

    def model_dump_safe(self) -> dict[str, str]:
        """Dump settings for display without exposing the API key."""
        return {
            "ollama_host": self.ollama_host,
            "ollama_model": self.ollama_model,
            "log_level": self.searchlight_log_level,
            "search_engine": self.search_engine,
            "tavily_api_key": "configured" if self.tavily_api_key else "not set",
            "browser_search_timeout": f"{self.browser_search_timeout:g}s",
            "browser_captcha_timeout": f"{self.browser_captcha_timeout:g}s",
            "fetch_timeout": f"{self.fetch_timeout:g}s",
            "fetch_max_chars": str(self.fetch_max_chars),
            "fetch_max_candidates": str(self.fetch_max_candidates),
        }


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it on first call."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment/files.

    Useful for testing or when configuration changes at runtime.

    Returns:
        Settings: The newly loaded settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
