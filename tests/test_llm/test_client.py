"""Tests for the Ollama client."""

import asyncio
import json

import httpx
import pytest

from searchlight.llm.client import OllamaAPIError, OllamaClient, OllamaModelNotFoundError
from searchlight.llm.completion import collect_completion
from searchlight.llm.models import ChatMessage


def ndjson(*chunks: dict) -> bytes:
    return "\n".join(json.dumps(chunk) for chunk in chunks).encode() + b"\n"


def chat_chunk(content: str, done: bool = False) -> dict:
    return {
        "model": "qwen3:30b-a3b",
        "message": {"role": "assistant", "content": content},
        "done": done,
    }


class TestOllamaClient:
    """Tests for OllamaClient against a mock transport."""

    @pytest.mark.asyncio
    async def test_complete_streams_to_callback(self, test_settings):
        """Test that streamed chunks accumulate into the final text."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            body = ndjson(chat_chunk('{"need_'), chat_chunk('search": false}'), chat_chunk("", done=True))
            return httpx.Response(200, content=body)

        updates = []
        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            await client.complete(
                [ChatMessage.user("Hello")],
                should_stop=lambda: False,
                on_update=lambda text, complete, stopped: updates.append((text, complete, stopped)),
            )

        assert updates[-1] == ('{"need_search": false}', True, False)
        assert requests[0]["stream"] is True
        assert requests[0]["think"] is False
        assert requests[0]["options"]["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_complete_honours_stop(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=ndjson(chat_chunk("a"), chat_chunk("b", done=True)))

        updates = []
        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            await client.complete(
                [ChatMessage.user("Hello")],
                should_stop=lambda: True,
                on_update=lambda *args: updates.append(args),
            )

        assert updates == [("", False, True)]

    @pytest.mark.asyncio
    async def test_complete_without_done_reports_stop(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=ndjson(chat_chunk("partial")))

        updates = []
        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            await client.complete(
                [ChatMessage.user("Hello")],
                should_stop=lambda: False,
                on_update=lambda *args: updates.append(args),
            )

        assert updates[-1] == ("partial", False, True)

    @pytest.mark.asyncio
    async def test_collect_completion_with_client(self, test_settings):
        """Test the client used through the one-shot adapter."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=ndjson(chat_chunk("Hi"), chat_chunk(" there", done=True)))

        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            text = await collect_completion(client, [ChatMessage.user("Hello")])

        assert text == "Hi there"

    @pytest.mark.asyncio
    async def test_model_not_found(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "model not found"})

        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(OllamaModelNotFoundError, match="ollama pull"):
                await collect_completion(client, [ChatMessage.user("Hello")])

    @pytest.mark.asyncio
    async def test_server_error_detail(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "out of memory"})

        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(OllamaAPIError, match="out of memory") as exc_info:
                await collect_completion(client, [ChatMessage.user("Hello")])

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_error_line_mid_stream(self, test_settings):
        """Test that an error object after partial output fails the completion."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=ndjson(chat_chunk('{"need_'), {"error": "model runner crashed"}))

        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(OllamaAPIError, match="model runner crashed"):
                await asyncio.wait_for(collect_completion(client, [ChatMessage.user("Hello")]), timeout=1.0)

    @pytest.mark.asyncio
    async def test_health_check_and_models(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": [{"name": "qwen3:30b-a3b", "size": 1024}]})

        async with OllamaClient(settings=test_settings, transport=httpx.MockTransport(handler)) as client:
            assert await client.health_check() is True
            models = await client.list_models()

        assert [model.name for model in models] == ["qwen3:30b-a3b"]
