"""Async client for the Ollama API.

Only the streaming ``/api/chat`` endpoint is used for completions: intent
analysis needs to poll for cancellation between chunks, which a single
blocking request cannot offer. The client implements the
``TextCompletionService`` protocol.
"""

import json
from contextlib import aclosing, contextmanager
from typing import Any, AsyncIterator, Iterator

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from searchlight.config import Settings, get_settings
from searchlight.llm.completion import StopPredicate, UpdateCallback
from searchlight.llm.models import ChatMessage, ChatRequest, ChatResponse, ModelInfo, ModelList
from searchlight.logging import Timer, get_logger

logger = get_logger("searchlight.llm.client")

# Models whose reasoning output would precede the JSON answer
THINKING_MODEL_FAMILIES = ("qwen3", "deepseek-r1")


class OllamaError(Exception):
    """Base exception for Ollama client errors."""

    pass


class OllamaConnectionError(OllamaError):
    """Raised when the Ollama server cannot be reached or times out."""

    pass


class OllamaModelNotFoundError(OllamaError):
    """Raised when the configured model is not installed."""

    pass


class OllamaAPIError(OllamaError):
    """Raised when the Ollama API answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class OllamaClient:
    """Streaming chat client for a local Ollama server.

    Attributes:
        base_url: Base URL of the Ollama server
        model: Model used for completions
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: int | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Ollama client.

        Args:
            base_url: Ollama server URL (defaults to settings)
            model: Model name (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            settings: Settings instance (uses global if not provided)
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.ollama_base_url).rstrip("/")
        self.model = model or self.settings.ollama_model
        self.timeout = timeout or self.settings.ollama_timeout
        self.temperature = self.settings.ollama_temperature

        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @contextmanager
    def _ollama_errors(self) -> Iterator[None]:
        """Translate httpx failures into OllamaError subclasses."""
        try:
            yield
        except httpx.ConnectError as e:
            raise OllamaConnectionError(
                f"Failed to connect to Ollama at {self.base_url}. Is Ollama running? Error: {e}"
            ) from e
        except httpx.TimeoutException as e:
            raise OllamaConnectionError(
                f"Request to Ollama timed out after {self.timeout}s. "
                f"Consider increasing OLLAMA_TIMEOUT. Error: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise OllamaModelNotFoundError(
                    f"Model '{self.model}' not found. Run 'ollama pull {self.model}' to download it."
                ) from e
            raise OllamaAPIError(f"Ollama API error {status}: {_error_detail(e.response)}", status_code=status) from e

    @retry(
        retry=retry_if_exception_type(OllamaConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def health_check(self) -> bool:
        """Check that the server answers.

        Raises:
            OllamaConnectionError: If the server stays unreachable after retries
        """
        with self._ollama_errors():
            response = await self.http.get("/api/tags")
            response.raise_for_status()
        logger.info("Ollama health check passed", host=self.base_url)
        return True

    async def list_models(self) -> list[ModelInfo]:
        """List the models installed on the server."""
        with self._ollama_errors():
            response = await self.http.get("/api/tags")
            response.raise_for_status()
        models = ModelList(**response.json()).models
        logger.info("Listed Ollama models", count=len(models))
        return models

    def _build_request(self, messages: list[ChatMessage], **options: Any) -> ChatRequest:
        model_options = {"temperature": self.temperature, **options}
        thinks = any(family in self.model.lower() for family in THINKING_MODEL_FAMILIES)
        return ChatRequest(
            model=self.model,
            messages=messages,
            stream=True,
            options=model_options,
            think=False if thinks else None,
        )

    async def stream_chat(self, messages: list[ChatMessage], **options: Any) -> AsyncIterator[ChatResponse]:
        """Stream a chat completion, yielding chunks until Ollama reports done.

        Raises:
            OllamaConnectionError: If the server cannot be reached
            OllamaModelNotFoundError: If the model is not installed
            OllamaAPIError: On any other error status
        """
        payload = self._build_request(messages, **options).model_dump_ollama()
        logger.debug(
            "Starting streaming chat",
            model=self.model,
            message_count=len(messages),
            prompt_chars=sum(len(m.text) for m in messages),
        )

        with self._ollama_errors():
            async with self.http.stream("POST", "/api/chat", json=payload) as response:
                if response.is_error:
                    await response.aread()
                response.raise_for_status()

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning("Skipping malformed stream line", line=line[:120])
                        continue
                    if isinstance(data, dict) and "error" in data:
                        # Ollama reports failures mid-stream as an error object
                        raise OllamaAPIError(f"Ollama stream error: {data['error']}")
                    chunk = ChatResponse(**data)

                    yield chunk
                    if chunk.done:
                        break

    async def complete(
        self,
        messages: list[ChatMessage],
        should_stop: StopPredicate,
        on_update: UpdateCallback,
    ) -> None:
        """Stream a completion and report accumulated text through ``on_update``.

        Args:
            messages: Messages to send
            should_stop: Polled before each chunk; True aborts the stream
            on_update: Receives ``(text_so_far, is_complete, was_stopped)``
        """
        text = ""
        async with Timer(f"completion ({self.model})", logger):
            async with aclosing(self.stream_chat(messages)) as stream:
                async for chunk in stream:
                    if should_stop():
                        on_update(text, False, True)
                        return
                    text += chunk.message.text
                    if chunk.done:
                        logger.debug("Completion done", chars=len(text), tokens_per_second=chunk.tokens_per_second)
                        on_update(text, True, False)
                        return
                    on_update(text, False, False)

        # Stream closed without a done chunk
        on_update(text, False, True)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text[:200]
