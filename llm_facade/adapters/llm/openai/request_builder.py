"""OpenAI-compatible request builder and payload parsers."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from llm_facade.config.llm import OPENAI_URL
from llm_facade.domain.exceptions import ResponseDecodeError, StreamEventError
from llm_facade.domain.models import (
    ChatCompletionMessage,
    FinishReason,
    Model,
    ModelId,
    ToolCallPart,
    Usage,
)

if TYPE_CHECKING:
    from llm_facade.config import ProviderConfig
    from llm_facade.domain.models import Context, ContextMessage

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openai"
CLIENT_TITLE = "llm-facade"
CLIENT_REFERER = "https://github.com/llm-facade/llm-facade"

_FINISH_REASONS: dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "end_turn": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "max_tokens": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}


class OpenAIRequestBuilder:
    """Builds request headers and payloads for OpenAI-compatible APIs."""

    def __init__(self, provider: ProviderConfig, *, version: str) -> None:
        """Initialize the request builder.

        Args:
            provider: Provider connection parameters.
            version: Client version forwarded in ``x-app-version``.
        """
        self._provider = provider
        self._version = version
        # api.openai.com rejects top_k; routers such as OpenRouter accept it.
        self._supports_top_k = provider.url != OPENAI_URL

    def build_headers(self) -> dict[str, str]:
        """Build HTTP headers for the request."""
        headers = {
            "Content-Type": "application/json",
            "HTTP-Referer": CLIENT_REFERER,
            "X-Title": CLIENT_TITLE,
            "x-app-version": self._version,
            "User-Agent": f"{CLIENT_TITLE}/{self._version}",
        }
        if self._provider.key:
            headers["Authorization"] = f"Bearer {self._provider.key}"
        if self._provider.extra_headers:
            headers.update(self._provider.extra_headers)
        return headers

    def build_request_body(self, model_id: ModelId, context: Context) -> dict[str, Any]:
        """Build a streaming chat completions body from ``context``."""
        body: dict[str, Any] = {
            "model": model_id,
            "messages": [self._convert_message(message) for message in context.messages],
            "stream": True,
            "stream_options": {"include_usage": True},
        }

        if context.tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.input_schema,
                    },
                }
                for tool in context.tools
            ]
        if context.tool_choice is not None:
            body["tool_choice"] = context.tool_choice
        if context.max_tokens is not None:
            body["max_tokens"] = context.max_tokens
        if context.temperature is not None:
            body["temperature"] = context.temperature
        if context.top_p is not None:
            body["top_p"] = context.top_p
        if context.top_k is not None and self._supports_top_k:
            body["top_k"] = context.top_k

        return body

    def _convert_message(self, message: ContextMessage) -> dict[str, Any]:
        converted: dict[str, Any] = {"role": message.role, "content": message.content}
        if message.role == "assistant" and message.tool_calls:
            converted["tool_calls"] = [
                {
                    "id": call.call_id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in message.tool_calls
            ]
        if message.role == "tool":
            converted["tool_call_id"] = message.tool_call_id
        return converted

    def get_redacted_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Return headers with sensitive values redacted."""
        redacted = dict(headers)
        if "Authorization" in redacted:
            redacted["Authorization"] = "Bearer [REDACTED]"
        return redacted


def parse_models(payload: Any) -> list[Model]:
    """Parse a ``GET /models`` listing.

    Understands the plain OpenAI shape and the richer OpenRouter shape
    (``context_length``, ``supported_parameters``).
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        msg = "Model listing must be an object with a 'data' array"
        raise ResponseDecodeError(msg, provider=PROVIDER_NAME)

    models: list[Model] = []
    for entry in payload["data"]:
        if not isinstance(entry, dict) or not entry.get("id"):
            logger.debug("openai_model_entry_skipped", extra={"entry_type": type(entry).__name__})
            continue

        parameters = entry.get("supported_parameters")
        supported = set(parameters) if isinstance(parameters, list) else None
        context_length = entry.get("context_length")

        models.append(
            Model(
                id=ModelId(str(entry["id"])),
                name=entry.get("name"),
                description=entry.get("description"),
                context_length=context_length if isinstance(context_length, int) else None,
                tools_supported=None if supported is None else "tools" in supported,
                supports_parallel_tool_calls=(
                    None if supported is None else "parallel_tool_calls" in supported
                ),
                supports_reasoning=None if supported is None else "reasoning" in supported,
            )
        )
    return models


def parse_chunk(payload: dict[str, Any]) -> ChatCompletionMessage:
    """Convert one ``chat.completion.chunk`` into a message.

    Raises:
        StreamEventError: If the chunk carries an ``error`` object.
    """
    error = payload.get("error")
    if error:
        raise _stream_error(error)

    content: str | None = None
    reasoning: str | None = None
    tool_calls: list[ToolCallPart] = []
    finish_reason: FinishReason | None = None

    choices = payload.get("choices") or []
    if choices:
        choice = choices[0]
        delta = choice.get("delta") or {}
        content = delta.get("content") or None
        reasoning = delta.get("reasoning") or delta.get("reasoning_content") or None

        for raw_call in delta.get("tool_calls") or []:
            function = raw_call.get("function") or {}
            tool_calls.append(
                ToolCallPart(
                    index=raw_call.get("index", 0),
                    call_id=raw_call.get("id"),
                    name=function.get("name"),
                    arguments_part=function.get("arguments") or "",
                )
            )

        raw_reason = choice.get("finish_reason")
        if raw_reason:
            finish_reason = _FINISH_REASONS.get(raw_reason)
            if finish_reason is None:
                logger.warning("openai_unknown_finish_reason", extra={"finish_reason": raw_reason})

    return ChatCompletionMessage(
        content=content,
        reasoning=reasoning,
        tool_calls=tool_calls,
        finish_reason=finish_reason,
        usage=parse_usage(payload.get("usage")),
    )


def parse_usage(raw: Any) -> Usage | None:
    if not isinstance(raw, dict):
        return None
    details = raw.get("prompt_tokens_details") or {}
    prompt_tokens = int(raw.get("prompt_tokens") or 0)
    completion_tokens = int(raw.get("completion_tokens") or 0)
    return Usage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=int(raw.get("total_tokens") or prompt_tokens + completion_tokens),
        cached_tokens=int(details.get("cached_tokens") or 0),
    )


def extract_error_message(data: Any) -> str:
    """Extract an error message from an API error body."""
    if isinstance(data, dict):
        error = data.get("error", {})
        if isinstance(error, dict):
            return str(error.get("message", "Unknown API error"))
        if isinstance(error, str):
            return error
    return "Unknown API error"


def _stream_error(error: Any) -> StreamEventError:
    if not isinstance(error, dict):
        return StreamEventError(str(error), provider=PROVIDER_NAME)
    code = error.get("code")
    status_code = code if isinstance(code, int) else None
    error_type = error.get("type") or (code if isinstance(code, str) else None)
    return StreamEventError(
        str(error.get("message", "Unknown stream error")),
        provider=PROVIDER_NAME,
        error_type=error_type,
        status_code=status_code,
    )
