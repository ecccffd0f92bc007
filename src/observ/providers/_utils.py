"""Shared helpers for provider adapters."""

from __future__ import annotations

import time
from typing import Any

from observ.messages import ToolCall, read_field, serialize_arguments


def as_int(value: Any) -> int:
    """Coerce a token count to int, treating junk as zero."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def chat_usage_total(usage: Any) -> int:
    """Total tokens for chat-completion style usage objects."""
    if usage is None:
        return 0
    total = as_int(read_field(usage, "total_tokens", "totalTokens"))
    if total:
        return total
    return as_int(read_field(usage, "prompt_tokens", "promptTokens")) + as_int(
        read_field(usage, "completion_tokens", "completionTokens")
    )


def chat_tool_calls(raw: Any) -> list[ToolCall]:
    """Normalize chat-completion ``tool_calls`` entries."""
    if not raw:
        return []
    calls: list[ToolCall] = []
    for tc in raw:
        function = read_field(tc, "function")
        calls.append(
            ToolCall(
                id=str(read_field(tc, "id", default="")),
                name=str(read_field(function, "name", default="")),
                arguments=serialize_arguments(read_field(function, "arguments")),
                type=str(read_field(tc, "type", default="function")),
            )
        )
    return calls


def unix_now() -> int:
    return int(time.time())
