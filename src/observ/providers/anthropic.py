"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from observ.errors import ObservError
from observ.messages import (
    CanonicalMessage,
    ToolCall,
    normalize_messages,
    read_field,
    serialize_arguments,
)
from observ.providers._utils import as_int
from observ.streaming import SyntheticStream

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"


def _anthropic_types() -> Any:
    """Import the Anthropic types module lazily."""
    try:
        from anthropic import types
    except ImportError as e:
        raise ObservError(
            "anthropic package not installed",
            hint="pip install anthropic",
        ) from e
    return types


class AnthropicAdapter:
    """Messages API shapes."""

    @property
    def name(self) -> str:
        return "anthropic"

    def resolve_model(self, params: Mapping[str, Any]) -> str:
        return str(params.get("model") or DEFAULT_ANTHROPIC_MODEL)

    def normalize(self, params: Mapping[str, Any]) -> list[CanonicalMessage]:
        messages = normalize_messages(params.get("messages") or [])
        system = params.get("system")
        if system:
            # The system prompt is a top-level parameter, not a message turn.
            system_text = "\n".join(m.content for m in normalize_messages(system))
            messages.insert(0, CanonicalMessage(role="system", content=system_text))
        return messages

    def build_response(self, content: str, model: str) -> Any:
        return _anthropic_types().Message.model_validate(
            _message_payload(model, content=[{"type": "text", "text": content}])
        )

    def build_stream(self, content: str, model: str) -> Any:
        types = _anthropic_types()
        return SyntheticStream(
            [
                types.RawMessageStartEvent.model_validate(
                    {
                        "type": "message_start",
                        "message": _message_payload(
                            model, content=[], stop_reason=None
                        ),
                    }
                ),
                types.RawContentBlockStartEvent.model_validate(
                    {
                        "type": "content_block_start",
                        "index": 0,
                        "content_block": {"type": "text", "text": ""},
                    }
                ),
                types.RawContentBlockDeltaEvent.model_validate(
                    {
                        "type": "content_block_delta",
                        "index": 0,
                        "delta": {"type": "text_delta", "text": content},
                    }
                ),
                types.RawContentBlockStopEvent.model_validate(
                    {"type": "content_block_stop", "index": 0}
                ),
                types.RawMessageDeltaEvent.model_validate(
                    {
                        "type": "message_delta",
                        "delta": {"stop_reason": "end_turn", "stop_sequence": None},
                        "usage": {"output_tokens": 0},
                    }
                ),
                types.RawMessageStopEvent.model_validate({"type": "message_stop"}),
            ]
        )

    def extract_content(self, response: Any) -> str:
        texts = [
            str(read_field(block, "text", default=""))
            for block in read_field(response, "content", default=[])
            if read_field(block, "type") == "text"
        ]
        return "".join(texts)

    def extract_usage(self, response: Any) -> int:
        usage = read_field(response, "usage")
        if usage is None:
            return 0
        return as_int(read_field(usage, "input_tokens")) + as_int(
            read_field(usage, "output_tokens")
        )

    def extract_tool_calls(self, response: Any) -> list[ToolCall]:
        calls: list[ToolCall] = []
        for block in read_field(response, "content", default=[]):
            if read_field(block, "type") != "tool_use":
                continue
            call_id = read_field(block, "id")
            name = read_field(block, "name")
            if not call_id or not name:
                continue
            calls.append(
                ToolCall(
                    id=str(call_id),
                    name=str(name),
                    arguments=serialize_arguments(read_field(block, "input", default={})),
                )
            )
        return calls

    def stream_source(self, result: Any) -> Any:
        return result

    def replace_stream(self, result: Any, stream: Any) -> Any:
        _ = result
        return stream

    def extract_stream_content(self, chunks: Sequence[Any]) -> str:
        parts: list[str] = []
        for event in chunks:
            if read_field(event, "type") != "content_block_delta":
                continue
            delta = read_field(event, "delta")
            if read_field(delta, "type") == "text_delta":
                parts.append(str(read_field(delta, "text", default="")))
        return "".join(parts)

    def extract_stream_usage(self, chunks: Sequence[Any]) -> int:
        input_tokens = 0
        output_tokens = 0
        for event in chunks:
            event_type = read_field(event, "type")
            if event_type == "message_start":
                usage = read_field(read_field(event, "message"), "usage")
                input_tokens = as_int(read_field(usage, "input_tokens"))
                output_tokens = as_int(read_field(usage, "output_tokens"))
            elif event_type == "message_delta":
                # output_tokens on message_delta is cumulative.
                usage = read_field(event, "usage")
                output_tokens = as_int(read_field(usage, "output_tokens"))
        return input_tokens + output_tokens


def _message_payload(
    model: str,
    *,
    content: list[dict[str, Any]],
    stop_reason: str | None = "end_turn",
) -> dict[str, Any]:
    return {
        "id": "",
        "type": "message",
        "role": "assistant",
        "content": content,
        "model": model,
        "stop_reason": stop_reason,
        "stop_sequence": None,
        "usage": {"input_tokens": 0, "output_tokens": 0},
    }
