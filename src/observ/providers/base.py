"""Provider adapter protocol: the capability set one gateway pipeline needs.

Each wrapped SDK implements this once; cache checks, fallback and telemetry
are shared in :mod:`observ.pipeline`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from observ.messages import CanonicalMessage, ToolCall


@runtime_checkable
class ProviderAdapter(Protocol):
    """Minimal adapter protocol for one provider's native shapes."""

    @property
    def name(self) -> str:
        """Provider id sent to the gateway."""
        ...

    def resolve_model(self, params: Mapping[str, Any]) -> str:
        """Return the model id for a call."""
        ...

    def normalize(self, params: Mapping[str, Any]) -> list[CanonicalMessage]:
        """Extract canonical messages from call parameters."""
        ...

    def build_response(self, content: str, model: str) -> Any:
        """Synthesize a native non-streaming response with zero usage."""
        ...

    def build_stream(self, content: str, model: str) -> Any:
        """Synthesize a native stream result replaying *content*."""
        ...

    def extract_content(self, response: Any) -> str: ...  # noqa: D102
    def extract_usage(self, response: Any) -> int: ...  # noqa: D102
    def extract_tool_calls(self, response: Any) -> list[ToolCall]: ...  # noqa: D102

    def stream_source(self, result: Any) -> Any:
        """Return the async iterable of chunks inside a stream result."""
        ...

    def replace_stream(self, result: Any, stream: Any) -> Any:
        """Return *result* with its chunk iterable replaced by *stream*."""
        ...

    def extract_stream_content(self, chunks: Sequence[Any]) -> str: ...  # noqa: D102
    def extract_stream_usage(self, chunks: Sequence[Any]) -> int: ...  # noqa: D102
