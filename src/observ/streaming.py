"""Stream capture and synthetic cached streams.

``CaptureStream`` tees a provider stream: each chunk the caller reads is
recorded, then handed over unchanged. When the stream ends (exhausted,
failed, or closed early) the recorded chunks are passed to a completion
hook exactly once.

``SyntheticStream`` replays a fixed, finite chunk sequence once.
"""

from __future__ import annotations

import inspect
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self, TypeAlias

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence

    StreamHook: TypeAlias = Callable[[list[Any], BaseException | None], None]

log = logging.getLogger(__name__)


class CaptureStream:
    """Async iterator that records every chunk it forwards."""

    def __init__(self, source: Any, on_complete: StreamHook) -> None:
        self._source = source
        self._iterator: AsyncIterator[Any] | None = None
        self._on_complete = on_complete
        self._chunks: list[Any] = []
        self._finished = False

    @property
    def chunks(self) -> list[Any]:
        """Chunks forwarded so far (a copy)."""
        return list(self._chunks)

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> Any:
        if self._iterator is None:
            self._iterator = aiter(self._source)
        try:
            chunk = await anext(self._iterator)
        except StopAsyncIteration:
            self._finish(None)
            raise
        except Exception as e:
            self._finish(e)
            raise
        self._chunks.append(chunk)
        return chunk

    async def aclose(self) -> None:
        """Close the underlying stream and report what was captured."""
        try:
            for name in ("aclose", "close"):
                closer = getattr(self._source, name, None)
                if callable(closer):
                    result = closer()
                    if inspect.isawaitable(result):
                        await result
                    break
        finally:
            self._finish(None)

    close = aclose

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not defined here (e.g. SDK ``response``).
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._source, name)

    def _finish(self, error: BaseException | None) -> None:
        if self._finished:
            return
        self._finished = True
        try:
            self._on_complete(list(self._chunks), error)
        except Exception as e:
            log.debug("Stream completion hook failed: %s", e)


class SyntheticStream:
    """One-shot async stream over a fixed sequence of chunks."""

    def __init__(self, chunks: Sequence[Any]) -> None:
        self._chunks = list(chunks)
        self._index = 0
        self._closed = False

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> Any:
        if self._closed or self._index >= len(self._chunks):
            self._closed = True
            raise StopAsyncIteration
        chunk = self._chunks[self._index]
        self._index += 1
        return chunk

    async def aclose(self) -> None:
        self._closed = True

    close = aclose

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
