"""OpenAI-compatible chat completions adapter (OpenAI, xAI, OpenRouter)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from observ.errors import ObservError
from observ.messages import normalize_messages, read_field
from observ.providers._utils import chat_tool_calls, chat_usage_total, unix_now
from observ.streaming import SyntheticStream

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from observ.messages import CanonicalMessage, ToolCall

_ZERO_USAGE = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def _chat_types() -> tuple[Any, Any]:
    """Import the OpenAI response models lazily."""
    try:
        from openai.types.chat import ChatCompletion, ChatCompletionChunk
    except ImportError as e:
        raise ObservError(
            "openai package not installed",
            hint="pip install openai",
        ) from e
    return ChatCompletion, ChatCompletionChunk


class OpenAIAdapter:
    """Chat Completions API shapes."""

    def __init__(self, name: str = "openai", *, default_model: str = "unknown") -> None:
        """Initialize with the provider id reported to the gateway."""
        self._name = name
        self._default_model = default_model

    @property
    def name(self) -> str:
        return self._name

    def resolve_model(self, params: Mapping[str, Any]) -> str:
        return str(params.get("model") or self._default_model)

    def normalize(self, params: Mapping[str, Any]) -> list[CanonicalMessage]:
        return normalize_messages(params.get("messages") or [])

    def build_response(self, content: str, model: str) -> Any:
        chat_completion, _ = _chat_types()
        return chat_completion.model_validate(
            {
                "id": "",
                "object": "chat.completion",
                "created": unix_now(),
                "model": model,
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": content},
                        "finish_reason": "stop",
                    }
                ],
                "usage": dict(_ZERO_USAGE),
            }
        )

    def build_stream(self, content: str, model: str) -> Any:
        _, chunk_type = _chat_types()
        created = unix_now()
        base = {
            "id": "",
            "object": "chat.completion.chunk",
            "created": created,
            "model": model,
        }
        return SyntheticStream(
            [
                chunk_type.model_validate(
                    {
                        **base,
                        "choices": [
                            {
                                "index": 0,
                                "delta": {"role": "assistant", "content": content},
                                "finish_reason": None,
                            }
                        ],
                    }
                ),
                chunk_type.model_validate(
                    {
                        **base,
                        "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
                        "usage": dict(_ZERO_USAGE),
                    }
                ),
            ]
        )

    def extract_content(self, response: Any) -> str:
        message = _first_choice_field(response, "message")
        return str(read_field(message, "content", default=""))

    def extract_usage(self, response: Any) -> int:
        return chat_usage_total(read_field(response, "usage"))

    def extract_tool_calls(self, response: Any) -> list[ToolCall]:
        message = _first_choice_field(response, "message")
        return chat_tool_calls(read_field(message, "tool_calls"))

    def stream_source(self, result: Any) -> Any:
        return result

    def replace_stream(self, result: Any, stream: Any) -> Any:
        _ = result
        return stream

    def extract_stream_content(self, chunks: Sequence[Any]) -> str:
        parts: list[str] = []
        for chunk in chunks:
            delta = _first_choice_field(chunk, "delta")
            text = read_field(delta, "content")
            if isinstance(text, str):
                parts.append(text)
        return "".join(parts)

    def extract_stream_usage(self, chunks: Sequence[Any]) -> int:
        # Usage only arrives when stream_options={"include_usage": True}.
        for chunk in reversed(chunks):
            usage = read_field(chunk, "usage")
            if usage is not None:
                return chat_usage_total(usage)
        return 0


def _first_choice_field(response: Any, name: str) -> Any:
    choices = read_field(response, "choices")
    if not choices:
        return None
    return read_field(choices[0], name)
