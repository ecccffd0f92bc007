"""Capture pipe and synthetic stream behavior."""

from __future__ import annotations

from typing import Any

import pytest

from observ.streaming import CaptureStream, SyntheticStream
from tests.conftest import aiter_chunks

pytestmark = pytest.mark.unit


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[list[Any], BaseException | None]] = []

    def __call__(self, chunks: list[Any], error: BaseException | None) -> None:
        self.calls.append((chunks, error))


class ClosableSource:
    """Provider-stream double with an SDK-style attribute and close()."""

    def __init__(self, chunks: list[Any]) -> None:
        self._chunks = iter(chunks)
        self.closed = False
        self.response = "raw-http-response"

    def __aiter__(self) -> ClosableSource:
        return self

    async def __anext__(self) -> Any:
        try:
            return next(self._chunks)
        except StopIteration:
            raise StopAsyncIteration from None

    async def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_chunks_pass_through_unchanged_and_hook_fires_once() -> None:
    hook = Recorder()
    stream = CaptureStream(aiter_chunks(["a", "b", "c"]), hook)

    received = [chunk async for chunk in stream]
    # Closing after exhaustion must not re-fire the hook.
    await stream.aclose()

    assert received == ["a", "b", "c"]
    assert hook.calls == [(["a", "b", "c"], None)]


@pytest.mark.asyncio
async def test_source_error_is_reported_and_reraised() -> None:
    hook = Recorder()
    boom = RuntimeError("connection reset")
    stream = CaptureStream(aiter_chunks(["a"], error=boom), hook)

    received = []
    with pytest.raises(RuntimeError, match="connection reset"):
        async for chunk in stream:
            received.append(chunk)

    assert received == ["a"]
    assert hook.calls == [(["a"], boom)]


@pytest.mark.asyncio
async def test_early_close_reports_partial_chunks_and_closes_source() -> None:
    hook = Recorder()
    source = ClosableSource(["a", "b", "c"])
    stream = CaptureStream(source, hook)

    async with stream:
        first = await anext(stream)

    assert first == "a"
    assert source.closed
    assert hook.calls == [(["a"], None)]


@pytest.mark.asyncio
async def test_hook_failure_does_not_break_the_stream() -> None:
    def failing_hook(chunks: list[Any], error: BaseException | None) -> None:
        raise ValueError("bad hook")

    stream = CaptureStream(aiter_chunks(["a"]), failing_hook)

    assert [chunk async for chunk in stream] == ["a"]


def test_unknown_attributes_delegate_to_source() -> None:
    source = ClosableSource([])
    stream = CaptureStream(source, Recorder())

    assert stream.response == "raw-http-response"
    with pytest.raises(AttributeError):
        _ = stream._private


@pytest.mark.asyncio
async def test_chunks_property_is_a_copy() -> None:
    stream = CaptureStream(aiter_chunks(["a"]), Recorder())
    await anext(stream)

    stream.chunks.append("mutated")

    assert stream.chunks == ["a"]


@pytest.mark.asyncio
async def test_synthetic_stream_is_one_shot() -> None:
    stream = SyntheticStream(["x", "y"])

    assert [chunk async for chunk in stream] == ["x", "y"]
    assert [chunk async for chunk in stream] == []


@pytest.mark.asyncio
async def test_synthetic_stream_stops_after_close() -> None:
    stream = SyntheticStream(["x", "y"])
    await stream.aclose()

    with pytest.raises(StopAsyncIteration):
        await anext(stream)
