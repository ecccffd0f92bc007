"""Unified language-model middleware.

Wraps any model object exposing ``provider``, ``model_id`` and async
``do_generate(params)`` / ``do_stream(params)`` so every provider behind a
multi-provider abstraction shares one cache/trace path.

Result shapes:
- ``do_generate`` returns a dict with ``text`` (or string ``content``),
  ``usage`` (``prompt_tokens``/``completion_tokens``/``total_tokens``),
  ``finish_reason`` and optional ``tool_calls``.
- ``do_stream`` returns a dict whose ``stream`` yields chunk dicts:
  ``{"type": "text-delta", "text_delta": ...}`` and
  ``{"type": "finish", "finish_reason": ..., "usage": {...}}``.

Per-call metadata travels in ``params["provider_options"]["observ"]``.
"""

from __future__ import annotations

from collections.abc import Mapping
import copy
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from observ.messages import ToolCall, normalize_messages, read_field, serialize_arguments
from observ.providers._utils import chat_usage_total
from observ.request import CallOptions
from observ.streaming import SyntheticStream

if TYPE_CHECKING:
    from collections.abc import Sequence

    from observ.messages import CanonicalMessage
    from observ.pipeline import GatewayPipeline

log = logging.getLogger(__name__)

_ZERO_USAGE = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


@runtime_checkable
class LanguageModel(Protocol):
    """What the middleware needs from a model object."""

    provider: str
    model_id: str

    async def do_generate(self, params: dict[str, Any]) -> dict[str, Any]: ...  # noqa: D102
    async def do_stream(self, params: dict[str, Any]) -> dict[str, Any]: ...  # noqa: D102


class LanguageModelAdapter:
    """Adapter for unified language-model results."""

    def __init__(self, model: Any) -> None:
        """Initialize from the wrapped model's identity."""
        self._model = model

    @property
    def name(self) -> str:
        return str(read_field(self._model, "provider", "provider_id") or "unknown")

    def resolve_model(self, params: Mapping[str, Any]) -> str:
        model_id = read_field(self._model, "model_id") or params.get("model")
        return str(model_id or "unknown")

    def normalize(self, params: Mapping[str, Any]) -> list[CanonicalMessage]:
        prompt = params.get("prompt")
        if prompt is None:
            prompt = params.get("messages")
        return normalize_messages(prompt)

    def build_response(self, content: str, model: str) -> dict[str, Any]:
        return {
            "text": content,
            "content": content,
            "tool_calls": [],
            "tool_results": [],
            "finish_reason": "stop",
            "usage": dict(_ZERO_USAGE),
            "warnings": [],
            "request": {"body": None},
            "response": {
                "id": "cached",
                "model_id": model,
                "timestamp": datetime.now(UTC),
            },
            "raw_response": {"headers": {}},
        }

    def build_stream(self, content: str, model: str) -> dict[str, Any]:
        _ = model
        return {
            "stream": SyntheticStream(
                [
                    {"type": "text-delta", "text_delta": content},
                    {
                        "type": "finish",
                        "finish_reason": "stop",
                        "usage": dict(_ZERO_USAGE),
                    },
                ]
            ),
            "warnings": [],
            "raw_response": {"headers": {}},
        }

    def extract_content(self, response: Any) -> str:
        text = read_field(response, "text")
        if isinstance(text, str):
            return text
        content = read_field(response, "content")
        return content if isinstance(content, str) else ""

    def extract_usage(self, response: Any) -> int:
        return chat_usage_total(read_field(response, "usage"))

    def extract_tool_calls(self, response: Any) -> list[ToolCall]:
        raw = read_field(response, "tool_calls", "toolCalls") or []
        return [
            ToolCall(
                id=str(read_field(tc, "tool_call_id", "toolCallId", "id", default="")),
                name=str(read_field(tc, "tool_name", "toolName", "name", default="")),
                arguments=serialize_arguments(
                    read_field(tc, "args", "input", "arguments")
                ),
            )
            for tc in raw
        ]

    def stream_source(self, result: Any) -> Any:
        return read_field(result, "stream")

    def replace_stream(self, result: Any, stream: Any) -> Any:
        if isinstance(result, Mapping):
            return {**result, "stream": stream}
        replaced = copy.copy(result)
        replaced.stream = stream
        return replaced

    def extract_stream_content(self, chunks: Sequence[Any]) -> str:
        parts: list[str] = []
        for chunk in chunks:
            if read_field(chunk, "type") != "text-delta":
                continue
            delta = read_field(chunk, "text_delta", "textDelta", "delta")
            if isinstance(delta, str):
                parts.append(delta)
        return "".join(parts)

    def extract_stream_usage(self, chunks: Sequence[Any]) -> int:
        for chunk in chunks:
            if read_field(chunk, "type") == "finish":
                return chat_usage_total(read_field(chunk, "usage"))
        return 0


def transform_params(params: Mapping[str, Any]) -> tuple[dict[str, Any], CallOptions]:
    """Split per-call Observ options out of *params* and repair tool schemas.

    Tool input schemas missing ``"type"`` get ``"object"``, which the
    Anthropic API requires.
    """
    transformed = dict(params)
    tools = transformed.get("tools")
    if isinstance(tools, dict):
        transformed["tools"] = {
            key: _fix_tool_schema(key, tool) for key, tool in tools.items()
        }
    elif isinstance(tools, list):
        transformed["tools"] = [
            _fix_tool_schema(str(read_field(tool, "name", default=i)), tool)
            for i, tool in enumerate(tools)
        ]

    provider_options = transformed.get("provider_options") or {}
    observ_options = read_field(provider_options, "observ") or {}
    options = CallOptions(
        metadata=read_field(observ_options, "metadata"),
        session_id=read_field(observ_options, "session_id", "sessionId"),
    )
    return transformed, options


def _fix_tool_schema(key: str, tool: Any) -> Any:
    if not isinstance(tool, dict):
        return tool
    for schema_key in ("input_schema", "inputSchema"):
        schema = tool.get(schema_key)
        if isinstance(schema, dict) and not schema.get("type"):
            log.debug("Fixing missing type field for tool: %s", tool.get("name", key))
            return {**tool, schema_key: {**schema, "type": "object"}}
    return tool


class ObservedLanguageModel:
    """A language model whose calls go through the gateway pipeline."""

    def __init__(self, model: Any, pipeline: GatewayPipeline) -> None:
        """Wrap *model*; attributes not defined here are delegated to it."""
        self._model = model
        self._pipeline = pipeline
        self._adapter = LanguageModelAdapter(model)

    @property
    def wrapped(self) -> Any:
        return self._model

    @property
    def provider(self) -> str:
        return self._adapter.name

    @property
    def model_id(self) -> str:
        return self._adapter.resolve_model({})

    async def do_generate(self, params: Mapping[str, Any]) -> Any:
        """Generate through the cache, falling back to the model on any gateway fault."""
        log.debug("Wrapping generate call for %s/%s", self.provider, self.model_id)
        call_params, options = transform_params(params)
        return await self._pipeline.complete(
            self._adapter,
            call_params,
            lambda: self._model.do_generate(call_params),
            options=options,
        )

    async def do_stream(self, params: Mapping[str, Any]) -> Any:
        """Stream through the cache; cache hits replay as a one-shot stream."""
        log.debug("Wrapping stream call for %s/%s", self.provider, self.model_id)
        call_params, options = transform_params(params)
        return await self._pipeline.stream(
            self._adapter,
            call_params,
            lambda: self._model.do_stream(call_params),
            options=options,
        )

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._model, name)
