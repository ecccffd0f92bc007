"""Completion request envelope and per-call options."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from observ.messages import CanonicalMessage


@dataclass(frozen=True)
class CallOptions:
    """Per-call gateway metadata, carried by value.

    ``with_*`` return new instances; a shared wrapper never stores them, so
    concurrent calls cannot leak metadata into each other's requests.
    """

    metadata: Mapping[str, Any] | None = None
    session_id: str | None = None

    def with_metadata(self, metadata: Mapping[str, Any] | None) -> CallOptions:
        return replace(self, metadata=dict(metadata) if metadata else None)

    def with_session_id(self, session_id: str | None) -> CallOptions:
        return replace(self, session_id=session_id)


@dataclass(frozen=True)
class Features:
    """Gateway feature flags. ``trace`` is always on."""

    recall: bool
    trace: bool = True
    resilience: bool = False
    adapt: bool = False

    def to_wire(self) -> dict[str, bool]:
        return {
            "trace": self.trace,
            "recall": self.recall,
            "resilience": self.resilience,
            "adapt": self.adapt,
        }


@dataclass(frozen=True)
class CompletionRequest:
    """Envelope sent to the gateway for a cache check."""

    provider: str
    model: str
    messages: tuple[CanonicalMessage, ...]
    features: Features
    environment: str | None = None
    metadata: Mapping[str, Any] | None = field(default=None)
    external_session_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "provider": self.provider,
            "model": self.model,
            "messages": [m.to_wire() for m in self.messages],
            "features": self.features.to_wire(),
        }
        if self.environment is not None:
            wire["environment"] = self.environment
        if self.metadata is not None:
            wire["metadata"] = dict(self.metadata)
        if self.external_session_id is not None:
            wire["external_session_id"] = self.external_session_id
        return wire


def build_completion_request(
    provider: str,
    model: str,
    messages: Sequence[CanonicalMessage],
    recall: bool,
    environment: str | None,
    metadata: Mapping[str, Any] | None = None,
    session_id: str | None = None,
) -> CompletionRequest:
    """Assemble the cache-check envelope. Pure: no I/O, no shared state."""
    return CompletionRequest(
        provider=provider,
        model=model,
        messages=tuple(messages),
        features=Features(recall=recall),
        environment=environment,
        metadata=dict(metadata) if metadata is not None else None,
        external_session_id=session_id,
    )
