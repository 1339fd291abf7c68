"""Pytest configuration and fixtures for Searchlight tests."""

import asyncio
import json
from typing import Any

import pytest

from searchlight.config import Settings
from searchlight.models import SearchResultItem


class FakeCompletion:
    """Completion service that replays a canned response."""

    def __init__(
        self,
        response: str = "",
        chunks: list[str] | None = None,
        stop: bool = False,
        error: Exception | None = None,
        hang: bool = False,
    ):
        self.response = response
        self.chunks = chunks or []
        self.stop = stop
        self.error = error
        self.hang = hang
        self.calls: list[list[Any]] = []

    async def complete(self, messages, should_stop, on_update) -> None:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        if self.hang:
            while not should_stop():
                await asyncio.sleep(0.01)
            on_update("", False, True)
            return

        text = ""
        for chunk in self.chunks:
            text += chunk
            on_update(text, False, False)
            await asyncio.sleep(0)
        if self.stop:
            on_update(text, False, True)
            return
        on_update(self.response, True, False)


class FakeSurface:
    """Browser surface that answers each script run with a scripted message.

    ``responses`` holds one message per extraction; the last one repeats.
    A response of None means the script posts nothing.
    """

    def __init__(self, responses: list[dict[str, Any] | None] | None = None, fire_load: bool = True):
        self.responses = list(responses or [])
        self.fire_load = fire_load
        self.handler = None
        self.loaded: list[str] = []
        self.scripts_run = 0
        self.visibility: list[bool] = []
        self.visible = False
        self.load_error: Exception | None = None

    def attach(self, handler) -> None:
        self.handler = handler

    async def load_url(self, url: str) -> None:
        self.loaded.append(url)
        if self.load_error is not None:
            raise self.load_error
        if self.fire_load:
            asyncio.get_running_loop().call_soon(self.handler.handle_load_finished)

    async def execute_script(self, script: str) -> None:
        self.scripts_run += 1
        if not self.responses:
            return
        index = min(self.scripts_run - 1, len(self.responses) - 1)
        response = self.responses[index]
        if response is not None:
            self.handler.handle_message(json.dumps(response))

    async def set_visible(self, visible: bool) -> None:
        self.visibility.append(visible)
        self.visible = visible


def results_message(*pairs: tuple[str, str]) -> dict[str, Any]:
    return {
        "type": "search_results",
        "results": [{"title": title, "url": url} for title, url in pairs],
        "actualUrl": "https://www.google.com/search?q=test",
    }


CAPTCHA_MESSAGE = {"type": "captcha_required", "message": "CAPTCHA verification required"}


@pytest.fixture
def test_settings():
    """Settings with short timeouts and no Tavily key."""
    return Settings(
        ollama_host="http://localhost:11434",
        ollama_model="qwen3:30b-a3b",
        searchlight_log_level="DEBUG",
        search_engine="google",
        tavily_api_key=None,
        browser_retry_delays=[0.01, 0.01, 0.02, 0.02, 0.05],
        browser_settle_delay=0.05,
        browser_search_timeout=1.0,
        browser_captcha_timeout=2.0,
        fetch_timeout=1.0,
    )


@pytest.fixture
def fake_completion():
    """Factory for fake completion services."""
    return FakeCompletion


@pytest.fixture
def fake_surface():
    """Factory for fake browser surfaces."""
    return FakeSurface


@pytest.fixture
def search_items():
    """Eight candidate results in relevance order."""
    return [
        SearchResultItem(title=f"Result {i}", url=f"https://example.com/{i}")
        for i in range(8)
    ]


@pytest.fixture
def results_message_factory():
    return results_message


@pytest.fixture
def captcha_message():
    return dict(CAPTCHA_MESSAGE)
