"""Tests for configuration management."""

import pytest
from pathlib import Path
from pydantic import ValidationError

from searchlight.config import Settings, get_settings, reload_settings


class TestSettings:
    """Test the Settings class."""

    def test_default_settings(self, monkeypatch):
        """Test that default settings match the pipeline defaults."""
        for name in ("OLLAMA_HOST", "SEARCH_ENGINE", "TAVILY_API_KEY", "FETCH_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("searchlight.config.Settings.model_config", {
            **Settings.model_config,
            "env_file": None,
        })

        settings = Settings()

        assert settings.ollama_host == "http://localhost:11434"
        assert settings.search_engine == "google"
        assert settings.tavily_api_key is None
        assert settings.browser_max_results == 8
        assert settings.browser_retry_delays == [0.1, 0.2, 0.4, 0.8, 1.5]
        assert settings.fetch_timeout == 8.0
        assert settings.fetch_max_chars == 10000
        assert settings.fetch_max_bytes == 200 * 1024
        assert settings.fetch_max_candidates == 8
        assert settings.intent_history_turns == 6
        assert settings.intent_history_chars == 200

    def test_env_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("SEARCH_ENGINE", "bing")
        monkeypatch.setenv("FETCH_TIMEOUT", "3.5")

        settings = Settings()

        assert settings.search_engine == "bing"
        assert settings.fetch_timeout == 3.5

    def test_invalid_engine(self):
        """Test that unknown engines are rejected."""
        with pytest.raises(ValidationError):
            Settings(search_engine="altavista")

    def test_bounds(self):
        """Test that out-of-range values are rejected."""
        with pytest.raises(ValidationError):
            Settings(fetch_max_candidates=0)
        with pytest.raises(ValidationError):
            Settings(browser_retry_delays=[])

    def test_blank_tavily_key_is_unset(self):
        """Test that an empty key does not enable the direct API."""
        settings = Settings(tavily_api_key="   ")

        assert settings.tavily_api_key is None
        assert settings.has_direct_search_api is False

    def test_tavily_key_enables_direct_api(self):
        settings = Settings(tavily_api_key="tvly-secret")

        assert settings.has_direct_search_api is True

    def test_log_file_expanded(self, tmp_path):
        """Test that log file paths become absolute."""
        settings = Settings(searchlight_log_file=str(tmp_path / "logs" / "search.log"))

        assert isinstance(settings.searchlight_log_file, Path)
        assert settings.searchlight_log_file.is_absolute()

    def test_model_dump_safe_hides_key(self):
        """Test that the safe dump never shows the API key."""
        settings = Settings(tavily_api_key="tvly-secret")

        dumped = settings.model_dump_safe()

        assert dumped["tavily_api_key"] == "configured"
        assert "tvly-secret" not in str(dumped)

    def test_ollama_base_url_strips_slash(self):
        settings = Settings(ollama_host="http://localhost:11434/")

        assert settings.ollama_base_url == "http://localhost:11434"


class TestGlobalSettings:
    """Test the global settings accessors."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reload_settings(self, monkeypatch):
        """Test that reloading picks up new environment values."""
        monkeypatch.setenv("SEARCH_ENGINE", "baidu")

        settings = reload_settings()

        assert settings.search_engine == "baidu"
        assert get_settings() is settings
        monkeypatch.delenv("SEARCH_ENGINE")
        reload_settings()
