"""Pydantic models for chat messages and Ollama API payloads.

Conversation history handed to the pipeline is a list of ``ChatMessage``;
the request and response models mirror Ollama's ``/api/chat`` wire format.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class ContentBlock(BaseModel):
    """A block of message content. Only text blocks carry meaning here."""

    type: Literal["text", "image", "document"] = Field(default="text")
    text: str | None = Field(default=None, description="Text of a text block")


class ChatMessage(BaseModel):
    """A role-tagged message in a conversation.

    Content is either a plain string or a list of blocks, matching the
    shapes chat front-ends commonly store.
    """

    role: Literal["system", "user", "assistant"] = Field(
        ...,
        description="Role of the message sender",
    )
    content: str | list[ContentBlock] = Field(..., description="Message content")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> Any:
        """Accept None as empty text."""
        if v is None:
            return ""
        return v

    @property
    def text(self) -> str:
        """All text carried by the message, blocks joined by spaces."""
        if isinstance(self.content, str):
            return self.content
        return " ".join(block.text for block in self.content if block.text)

    def model_dump_ollama(self) -> dict[str, Any]:
        """Dump the message in Ollama API format.

        Returns:
            dict: Message formatted for Ollama API
        """
        return {"role": self.role, "content": self.text}

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str | list[ContentBlock]) -> "ChatMessage":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role="assistant", content=content)


class ChatRequest(BaseModel):
    """Request to the Ollama chat API."""

    model: str = Field(..., description="Model name to use")
    messages: list[ChatMessage] = Field(..., description="Conversation messages")
    stream: bool = Field(default=False, description="Enable streaming responses")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Model-specific options (temperature, etc.)",
    )
    think: bool | None = Field(default=None, description="Enable or disable reasoning output")

    def model_dump_ollama(self) -> dict[str, Any]:
        """Dump the request in Ollama API format."""
        result: dict[str, Any] = {
            "model": self.model,
            "messages": [msg.model_dump_ollama() for msg in self.messages],
            "stream": self.stream,
        }
        if self.options:
            result["options"] = self.options
        if self.think is not None:
            result["think"] = self.think
        return result


class ChatResponse(BaseModel):
    """A response, or one streamed chunk of a response, from the Ollama chat API."""

    model: str = Field(..., description="Model used for generation")
    message: ChatMessage = Field(..., description="Generated message (or chunk)")
    done: bool = Field(default=True, description="Whether generation is complete")
    created_at: datetime | None = Field(default=None)

    # Present on the final chunk
    total_duration: int | None = None
    eval_count: int | None = None
    eval_duration: int | None = None

    @property
    def tokens_per_second(self) -> float | None:
        """Generation speed, when Ollama reported it."""
        if self.eval_count and self.eval_duration and self.eval_duration > 0:
            return (self.eval_count / self.eval_duration) * 1_000_000_000
        return None


class ModelInfo(BaseModel):
    """Information about an installed Ollama model."""

    name: str = Field(..., description="Model name")
    modified_at: datetime | None = None
    size: int | None = Field(default=None, description="Model size in bytes")

    @property
    def size_gb(self) -> float | None:
        return self.size / (1024 * 1024 * 1024) if self.size else None


class ModelList(BaseModel):
    """List of available models."""

    models: list[ModelInfo] = Field(default_factory=list)
