"""LLM access for Searchlight.

Intent analysis talks to models only through ``TextCompletionService``;
``OllamaClient`` is the bundled implementation.
"""

from searchlight.llm.client import (
    OllamaAPIError,
    OllamaClient,
    OllamaConnectionError,
    OllamaError,
    OllamaModelNotFoundError,
)
from searchlight.llm.completion import (
    CompletionStopped,
    CompletionUpdate,
    TextCompletionService,
    collect_completion,
)
from searchlight.llm.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ContentBlock,
    ModelInfo,
    ModelList,
)

__all__ = [
    # Client
    "OllamaClient",
    "OllamaError",
    "OllamaConnectionError",
    "OllamaModelNotFoundError",
    "OllamaAPIError",
    # Completion protocol
    "TextCompletionService",
    "CompletionStopped",
    "CompletionUpdate",
    "collect_completion",
    # Models
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ContentBlock",
    "ModelInfo",
    "ModelList",
]
