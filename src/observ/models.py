"""Wire models for gateway responses and telemetry callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Self

from pydantic import BaseModel, ConfigDict, model_validator

if TYPE_CHECKING:
    from observ.messages import ToolCall


class GatewayVerdict(BaseModel):
    """The gateway's cache decision for one completion request.

    A ``cache_hit`` must carry ``content``; a ``proceed`` must carry the
    ``trace_id`` the later callback is keyed by.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    action: Literal["cache_hit", "proceed"]
    request_id: str | None = None
    trace_id: str | None = None
    content: str | None = None
    model: str | None = None
    external_session_id: str | None = None
    metadata: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _check_action_payload(self) -> Self:
        if self.action == "cache_hit" and self.content is None:
            raise ValueError("cache_hit verdict is missing content")
        if self.action == "proceed" and not self.trace_id:
            raise ValueError("proceed verdict is missing trace_id")
        return self

    @property
    def is_cache_hit(self) -> bool:
        return self.action == "cache_hit"


@dataclass(frozen=True)
class TelemetryCallback:
    """Outcome of a real provider call, reported against a trace id."""

    trace_id: str
    content: str
    duration_ms: int
    tokens_used: int
    tool_calls: tuple[ToolCall, ...] | None = None
    error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "trace_id": self.trace_id,
            "content": self.content,
            "duration_ms": self.duration_ms,
            "tokens_used": self.tokens_used,
        }
        if self.tool_calls:
            wire["tool_calls"] = [tc.to_report() for tc in self.tool_calls]
        if self.error is not None:
            wire["error"] = self.error
        return wire
