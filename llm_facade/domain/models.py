"""Data models shared by the client facade and provider backends."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, NewType

from pydantic import BaseModel, ConfigDict, Field

ModelId = NewType("ModelId", str)

Role = Literal["system", "user", "assistant", "tool"]


class Model(BaseModel):
    """Metadata for one model offered by a provider."""

    model_config = ConfigDict(frozen=True)

    id: ModelId = Field(description="Stable provider identifier, used as the cache key.")
    name: str | None = Field(default=None, description="Human-readable model name.")
    description: str | None = Field(default=None, description="Provider description.")
    context_length: int | None = Field(default=None, description="Context window in tokens.")
    tools_supported: bool | None = Field(
        default=None, description="Whether the model accepts tool definitions."
    )
    supports_parallel_tool_calls: bool | None = Field(
        default=None, description="Whether the model may emit several tool calls per turn."
    )
    supports_reasoning: bool | None = Field(
        default=None, description="Whether the model exposes reasoning output."
    )


class ToolCall(BaseModel):
    """A complete tool invocation recorded in the conversation history."""

    model_config = ConfigDict(frozen=True)

    call_id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ContextMessage(BaseModel):
    """One conversation turn sent to the provider."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = Field(
        default=None, description="For role=tool: the call this message answers."
    )

    @classmethod
    def system(cls, content: str) -> ContextMessage:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> ContextMessage:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCall] | None = None) -> ContextMessage:
        return cls(role="assistant", content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool_result(cls, call_id: str, content: str) -> ContextMessage:
        return cls(role="tool", content=content, tool_call_id=call_id)


class ToolDefinition(BaseModel):
    """A tool the model may call, described by a JSON schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class Context(BaseModel):
    """Request payload for a chat completion."""

    model_config = ConfigDict(extra="forbid")

    messages: list[ContextMessage] = Field(default_factory=list)
    tools: list[ToolDefinition] = Field(default_factory=list)
    tool_choice: Literal["auto", "none", "required"] | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    top_k: int | None = Field(default=None, gt=0)


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"


class Usage(BaseModel):
    """Token accounting reported by the provider."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0


class ToolCallPart(BaseModel):
    """A streamed fragment of a tool call.

    The first fragment of a call carries ``call_id`` and ``name``; later
    fragments append to ``arguments_part``.
    """

    model_config = ConfigDict(frozen=True)

    index: int = 0
    call_id: str | None = None
    name: str | None = None
    arguments_part: str = ""


class ChatCompletionMessage(BaseModel):
    """One item of a streamed chat response."""

    model_config = ConfigDict(frozen=True)

    content: str | None = None
    reasoning: str | None = None
    tool_calls: list[ToolCallPart] = Field(default_factory=list)
    finish_reason: FinishReason | None = None
    usage: Usage | None = None

    def is_empty(self) -> bool:
        return (
            not self.content
            and not self.reasoning
            and not self.tool_calls
            and self.finish_reason is None
            and self.usage is None
        )
