"""Anthropic request builder and stream event parser."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

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

PROVIDER_NAME = "anthropic"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096

_STOP_REASONS: dict[str, FinishReason] = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "pause_turn": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "tool_use": FinishReason.TOOL_CALLS,
    "refusal": FinishReason.CONTENT_FILTER,
}

# HTTP statuses Anthropic documents for the error types it can also send mid-stream.
_ERROR_TYPE_STATUS: dict[str, int] = {
    "invalid_request_error": 400,
    "authentication_error": 401,
    "permission_error": 403,
    "not_found_error": 404,
    "request_too_large": 413,
    "rate_limit_error": 429,
    "api_error": 500,
    "overloaded_error": 529,
}

_TOOL_CHOICE = {"auto": "auto", "required": "any", "none": "none"}


class AnthropicRequestBuilder:
    """Builds request headers and payloads for the Anthropic Messages API."""

    def __init__(
        self,
        provider: ProviderConfig,
        *,
        version: str,
        anthropic_version: str = ANTHROPIC_VERSION,
    ) -> None:
        """Initialize the request builder.

        Args:
            provider: Provider connection parameters (key required).
            version: Client version forwarded in ``x-app-version``.
            anthropic_version: Anthropic API version header.
        """
        self._provider = provider
        self._version = version
        self._anthropic_version = anthropic_version

    def build_headers(self) -> dict[str, str]:
        headers = {
            "x-api-key": self._provider.key or "",
            "Content-Type": "application/json",
            "anthropic-version": self._anthropic_version,
            "x-app-version": self._version,
        }
        if self._provider.extra_headers:
            headers.update(self._provider.extra_headers)
        return headers

    def build_request_body(self, model_id: ModelId, context: Context) -> dict[str, Any]:
        """Build a streaming Messages API body.

        Anthropic takes the system prompt as a top-level ``system`` parameter
        instead of a message in the array.
        """
        system_content, messages = self._extract_system_message(context.messages)

        body: dict[str, Any] = {
            "model": model_id,
            "messages": [self._convert_message(message) for message in messages],
            "max_tokens": context.max_tokens or DEFAULT_MAX_TOKENS,
            "stream": True,
        }

        if system_content:
            body["system"] = system_content

        if context.tools:
            body["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.input_schema,
                }
                for tool in context.tools
            ]
        if context.tool_choice is not None:
            body["tool_choice"] = {"type": _TOOL_CHOICE[context.tool_choice]}

        # Anthropic caps temperature at 1.0
        if context.temperature is not None:
            body["temperature"] = min(context.temperature, 1.0)
        if context.top_p is not None:
            body["top_p"] = context.top_p
        if context.top_k is not None:
            body["top_k"] = context.top_k

        return body

    def _extract_system_message(
        self, messages: list[ContextMessage]
    ) -> tuple[str | None, list[ContextMessage]]:
        system_content: str | None = None
        filtered: list[ContextMessage] = []

        for message in messages:
            if message.role == "system":
                # Concatenate multiple system messages if present
                system_content = (
                    f"{system_content}\n\n{message.content}" if system_content else message.content
                )
            else:
                filtered.append(message)

        return system_content, filtered

    def _convert_message(self, message: ContextMessage) -> dict[str, Any]:
        if message.role == "tool":
            return {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": message.tool_call_id,
                        "content": message.content,
                    }
                ],
            }

        if message.role == "assistant" and message.tool_calls:
            blocks: list[dict[str, Any]] = []
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.call_id,
                        "name": call.name,
                        "input": call.arguments,
                    }
                )
            return {"role": "assistant", "content": blocks}

        return {"role": message.role, "content": message.content}

    def get_redacted_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Return headers with sensitive values redacted."""
        redacted = dict(headers)
        if "x-api-key" in redacted:
            redacted["x-api-key"] = "[REDACTED]"
        return redacted


def parse_models_page(payload: Any) -> tuple[list[Model], str | None]:
    """Parse one page of ``GET /models``.

    Returns:
        The models on the page and the cursor for the next page, if any.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        msg = "Model listing must be an object with a 'data' array"
        raise ResponseDecodeError(msg, provider=PROVIDER_NAME)

    models = [
        Model(
            id=ModelId(str(entry["id"])),
            name=entry.get("display_name"),
            description=entry.get("display_name"),
            tools_supported=True,
            supports_parallel_tool_calls=True,
        )
        for entry in payload["data"]
        if isinstance(entry, dict) and entry.get("id")
    ]
    next_cursor = payload.get("last_id") if payload.get("has_more") else None
    return models, next_cursor


def extract_error_message(data: Any) -> str:
    """Extract an error message from an API error body."""
    if isinstance(data, dict):
        error = data.get("error", {})
        if isinstance(error, dict):
            return str(error.get("message", "Unknown API error"))
    return "Unknown API error"


class AnthropicStreamParser:
    """Turns Messages API stream events into chat completion messages.

    Token usage is split across ``message_start`` (input) and
    ``message_delta`` (output), so the parser keeps per-stream state.
    """

    def __init__(self) -> None:
        self._input_tokens = 0
        self._cached_tokens = 0
        self.finished = False

    def feed(self, event: str | None, payload: dict[str, Any]) -> ChatCompletionMessage | None:
        """Parse one event; returns None for events that carry nothing to emit.

        Raises:
            StreamEventError: For ``error`` events.
        """
        event_type = payload.get("type") or event

        if event_type == "message_start":
            usage = (payload.get("message") or {}).get("usage") or {}
            self._input_tokens = int(usage.get("input_tokens") or 0)
            self._cached_tokens = int(usage.get("cache_read_input_tokens") or 0)
            return None

        if event_type == "content_block_start":
            block = payload.get("content_block") or {}
            index = int(payload.get("index", 0))
            if block.get("type") == "tool_use":
                return ChatCompletionMessage(
                    tool_calls=[
                        ToolCallPart(index=index, call_id=block.get("id"), name=block.get("name"))
                    ]
                )
            if block.get("type") == "text" and block.get("text"):
                return ChatCompletionMessage(content=block["text"])
            return None

        if event_type == "content_block_delta":
            return self._parse_delta(int(payload.get("index", 0)), payload.get("delta") or {})

        if event_type == "message_delta":
            delta = payload.get("delta") or {}
            usage = payload.get("usage") or {}
            stop_reason = delta.get("stop_reason")
            finish_reason = _STOP_REASONS.get(stop_reason) if stop_reason else None
            if stop_reason and finish_reason is None:
                logger.warning("anthropic_unknown_stop_reason", extra={"stop_reason": stop_reason})
            output_tokens = int(usage.get("output_tokens") or 0)
            return ChatCompletionMessage(
                finish_reason=finish_reason,
                usage=Usage(
                    prompt_tokens=self._input_tokens,
                    completion_tokens=output_tokens,
                    total_tokens=self._input_tokens + output_tokens,
                    cached_tokens=self._cached_tokens,
                ),
            )

        if event_type == "message_stop":
            self.finished = True
            return None

        if event_type == "error":
            error = payload.get("error") or {}
            error_type = error.get("type")
            raise StreamEventError(
                str(error.get("message", "Unknown stream error")),
                provider=PROVIDER_NAME,
                error_type=error_type,
                status_code=_ERROR_TYPE_STATUS.get(error_type or ""),
            )

        # ping, content_block_stop and unknown future events
        return None

    def _parse_delta(self, index: int, delta: dict[str, Any]) -> ChatCompletionMessage | None:
        delta_type = delta.get("type")
        if delta_type == "text_delta":
            return ChatCompletionMessage(content=delta.get("text") or None)
        if delta_type == "thinking_delta":
            return ChatCompletionMessage(reasoning=delta.get("thinking") or None)
        if delta_type == "input_json_delta":
            return ChatCompletionMessage(
                tool_calls=[ToolCallPart(index=index, arguments_part=delta.get("partial_json") or "")]
            )
        return None
