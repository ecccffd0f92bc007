"""Message normalization: provider-native prompts into canonical messages.

Accepted shapes:
- a bare prompt string (one user message)
- a list of role/content messages, as dicts or SDK objects
- multi-part content (text parts joined with newlines; tool-call and
  tool-result parts extracted separately)
- an object carrying a nested ``messages`` list

Anything else becomes a single user message holding ``str(value)``.
Normalization never raises.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
from typing import Any

_TEXT_PART_TYPES = frozenset({"text", "input_text", "output_text"})
_TOOL_CALL_PART_TYPES = frozenset({"tool_use", "tool-call", "function_call"})
_TOOL_RESULT_PART_TYPES = frozenset(
    {"tool_result", "tool-result", "function_call_output"}
)
_TOOL_ROLES = frozenset({"tool", "function"})


@dataclass(frozen=True)
class ToolCall:
    """A normalized function/tool invocation.

    ``arguments`` is always a JSON string; use :meth:`to_report` for the
    parsed form sent in telemetry.
    """

    id: str
    name: str
    arguments: str = "{}"
    type: str = "function"

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {"name": self.name, "arguments": self.arguments},
        }

    def to_report(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {
                "name": self.name,
                "arguments": parse_arguments(self.arguments),
            },
        }


@dataclass(frozen=True)
class CanonicalMessage:
    """One normalized conversation turn."""

    role: str
    content: str = ""
    #: Only set on assistant messages.
    tool_calls: tuple[ToolCall, ...] | None = None
    #: Only set on tool-result messages.
    tool_call_id: str | None = None
    #: Only set on tool-result messages.
    name: str | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            wire["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            wire["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            wire["name"] = self.name
        return wire


@dataclass(frozen=True)
class _ToolResult:
    content: str
    call_id: str | None
    name: str | None


def normalize_messages(value: Any) -> list[CanonicalMessage]:
    """Convert any supported prompt/message shape into canonical messages."""
    if value is None:
        return []
    if isinstance(value, str):
        return [CanonicalMessage(role="user", content=value)]
    if isinstance(value, CanonicalMessage):
        return [value]
    if isinstance(value, (list, tuple)):
        messages: list[CanonicalMessage] = []
        for item in value:
            messages.extend(_normalize_item(item))
        return messages

    nested = read_field(value, "messages")
    if isinstance(nested, (list, tuple)):
        return normalize_messages(nested)
    if _looks_like_message(value):
        return _convert_message(value)
    return [CanonicalMessage(role="user", content=str(value))]


def serialize_arguments(value: Any) -> str:
    """Return tool-call arguments as the JSON string sent on the wire."""
    if isinstance(value, str):
        return value
    if value is None:
        return "{}"
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def parse_arguments(arguments: str) -> Any:
    """Parse wire arguments back to structured data for telemetry."""
    try:
        return json.loads(arguments)
    except (TypeError, ValueError):
        return {"raw": arguments}


def _normalize_item(item: Any) -> list[CanonicalMessage]:
    if isinstance(item, CanonicalMessage):
        return [item]
    if isinstance(item, str):
        return [CanonicalMessage(role="user", content=item)]
    if _looks_like_message(item):
        return _convert_message(item)
    return [CanonicalMessage(role="user", content=str(item))]


def read_field(obj: Any, *names: str, default: Any = None) -> Any:
    """Read the first non-None field by name from a mapping or an object."""
    for name in names:
        if isinstance(obj, Mapping):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return default


def _looks_like_message(obj: Any) -> bool:
    if isinstance(obj, Mapping):
        return "role" in obj or "content" in obj or "text" in obj
    return isinstance(getattr(obj, "role", None), str)


def _convert_message(msg: Any) -> list[CanonicalMessage]:
    role = str(read_field(msg, "role") or "user")
    raw_content = read_field(msg, "content")
    if raw_content is None:
        raw_content = read_field(msg, "text")
    text, part_calls, part_results = _split_content(raw_content)

    if role in _TOOL_ROLES:
        call_id = _optional_str(read_field(msg, "tool_call_id", "toolCallId"))
        name = _optional_str(read_field(msg, "name", "toolName"))
        if part_results:
            return [
                CanonicalMessage(
                    role=role,
                    content=r.content,
                    tool_call_id=r.call_id or call_id,
                    name=r.name or name,
                )
                for r in part_results
            ]
        return [
            CanonicalMessage(role=role, content=text, tool_call_id=call_id, name=name)
        ]

    messages: list[CanonicalMessage] = []
    # Tool results embedded in a user turn (Anthropic) become tool messages.
    for r in part_results:
        messages.append(
            CanonicalMessage(
                role="tool", content=r.content, tool_call_id=r.call_id, name=r.name
            )
        )

    if role == "assistant":
        calls = part_calls + _sibling_tool_calls(msg)
        messages.append(
            CanonicalMessage(role=role, content=text, tool_calls=tuple(calls) or None)
        )
    elif text or not part_results:
        messages.append(CanonicalMessage(role=role, content=text))
    return messages


def _split_content(raw: Any) -> tuple[str, list[ToolCall], list[_ToolResult]]:
    if raw is None:
        return "", [], []
    if isinstance(raw, str):
        return raw, [], []
    if isinstance(raw, Mapping):
        return _to_json(raw), [], []
    if not isinstance(raw, (list, tuple)):
        return str(raw), [], []

    texts: list[str] = []
    calls: list[ToolCall] = []
    results: list[_ToolResult] = []
    for part in raw:
        if isinstance(part, str):
            texts.append(part)
            continue
        part_type = read_field(part, "type")
        if not isinstance(part_type, str):
            continue
        if part_type in _TEXT_PART_TYPES:
            texts.append(str(read_field(part, "text", default="")))
        elif part_type in _TOOL_CALL_PART_TYPES:
            calls.append(
                ToolCall(
                    id=str(read_field(part, "id", "toolCallId", "call_id", default="")),
                    name=str(read_field(part, "name", "toolName", default="")),
                    arguments=serialize_arguments(
                        read_field(part, "input", "args", "arguments")
                    ),
                )
            )
        elif part_type in _TOOL_RESULT_PART_TYPES:
            results.append(
                _ToolResult(
                    content=_stringify_result(
                        read_field(part, "content", "result", "output", default="")
                    ),
                    call_id=_optional_str(
                        read_field(part, "tool_use_id", "toolCallId", "call_id")
                    ),
                    name=_optional_str(read_field(part, "name", "toolName")),
                )
            )
    return "\n".join(texts), calls, results


def _sibling_tool_calls(msg: Any) -> list[ToolCall]:
    raw = read_field(msg, "tool_calls", "toolCalls")
    if not isinstance(raw, (list, tuple)):
        return []
    calls: list[ToolCall] = []
    for tc in raw:
        if isinstance(tc, ToolCall):
            calls.append(tc)
            continue
        function = read_field(tc, "function")
        if function is not None:
            name = read_field(function, "name", default="")
            args = read_field(function, "arguments")
        else:
            name = read_field(tc, "toolName", "name", default="")
            args = read_field(tc, "args", "input", "arguments")
        calls.append(
            ToolCall(
                id=str(read_field(tc, "id", "toolCallId", default="")),
                name=str(name),
                arguments=serialize_arguments(args),
                type=str(read_field(tc, "type", default="function")),
            )
        )
    return calls


def _stringify_result(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and value:
        texts = [read_field(p, "text") for p in value if read_field(p, "type") == "text"]
        if len(texts) == len(value):
            return "\n".join(str(t) for t in texts)
    if value is None:
        return ""
    return _to_json(value)


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)
