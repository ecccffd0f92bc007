"""Pytest configuration and fixtures.

Provides environment isolation, a scripted gateway double served through
``httpx.MockTransport``, and fake provider clients. Environment fixtures
are autouse unless noted.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass, field
import json
import logging
import os
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from observ import Observ
from observ._http import CALLBACK_PATH, COMPLETE_PATH, SESSION_TOKEN_HEADER

TEST_API_KEY = "obs_test_key"
TEST_ENDPOINT = "https://gateway.test"

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class GatewayStub:
    """Scripted gateway behind ``httpx.MockTransport``.

    Records every cache check and callback request. Answers cache checks
    with ``verdict`` (or the raw ``body``), optionally after ``delay_s`` or
    by raising ``error``.
    """

    verdict: dict[str, Any] = field(
        default_factory=lambda: {
            "action": "proceed",
            "request_id": "r1",
            "trace_id": "t1",
        }
    )
    status_code: int = 200
    body: str | None = None
    delay_s: float = 0.0
    error: Exception | None = None
    session_token: str | None = None
    callback_status: int = 200
    callback_delay_s: float = 0.0
    check_requests: list[httpx.Request] = field(default_factory=list)
    callback_requests: list[httpx.Request] = field(default_factory=list)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == CALLBACK_PATH:
            self.callback_requests.append(request)
            if self.callback_delay_s:
                await asyncio.sleep(self.callback_delay_s)
            return httpx.Response(self.callback_status)

        assert request.url.path == COMPLETE_PATH
        self.check_requests.append(request)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        headers = {SESSION_TOKEN_HEADER: self.session_token} if self.session_token else {}
        if self.body is not None:
            return httpx.Response(self.status_code, text=self.body, headers=headers)
        return httpx.Response(self.status_code, json=self.verdict, headers=headers)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    @property
    def checks(self) -> list[dict[str, Any]]:
        """JSON bodies of every cache check, in order."""
        return [json.loads(r.content) for r in self.check_requests]

    @property
    def callbacks(self) -> list[dict[str, Any]]:
        """JSON bodies of every callback, in order."""
        return [json.loads(r.content) for r in self.callback_requests]

    def hit(self, content: str) -> None:
        self.verdict = {"action": "cache_hit", "request_id": "r1", "content": content}

    def miss(self, trace_id: str) -> None:
        self.verdict = {"action": "proceed", "request_id": "r1", "trace_id": trace_id}


@dataclass
class FakeMethod:
    """Async SDK method double: records kwargs, returns or raises on demand."""

    response: Any = None
    error: BaseException | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def __call__(self, **params: Any) -> Any:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return self.response


class FakeResource:
    """Stand-in for an SDK resource such as ``client.chat.completions``."""

    def __init__(self, method_name: str, method: FakeMethod) -> None:
        self.method = method
        setattr(self, method_name, self._call)

    async def _call(self, **params: Any) -> Any:
        return await self.method(**params)

    def other(self) -> str:
        return "untouched"


class FakeOpenAI:
    def __init__(self, method: FakeMethod | None = None) -> None:
        self.method = method or FakeMethod()
        self.chat = SimpleNamespace(completions=FakeResource("create", self.method))


class FakeAnthropic:
    def __init__(self, method: FakeMethod | None = None) -> None:
        self.method = method or FakeMethod()
        self.messages = FakeResource("create", self.method)


class FakeMistral:
    def __init__(self, method: FakeMethod | None = None) -> None:
        self.method = method or FakeMethod()
        self.chat = FakeResource("complete_async", self.method)


@dataclass
class FakeLanguageModel:
    """Unified model double with ``do_generate``/``do_stream``."""

    provider: str = "openai.chat"
    model_id: str = "gpt-4o-mini"
    generate_result: Any = None
    stream_result: Any = None
    error: BaseException | None = None
    generate_calls: list[dict[str, Any]] = field(default_factory=list)
    stream_calls: list[dict[str, Any]] = field(default_factory=list)
    label: str = "fake"

    async def do_generate(self, params: dict[str, Any]) -> Any:
        self.generate_calls.append(params)
        if self.error is not None:
            raise self.error
        return self.generate_result

    async def do_stream(self, params: dict[str, Any]) -> Any:
        self.stream_calls.append(params)
        if self.error is not None:
            raise self.error
        return self.stream_result


async def aiter_chunks(chunks: list[Any], *, error: BaseException | None = None):
    """Async generator over *chunks*, optionally raising after them."""
    for chunk in chunks:
        yield chunk
    if error is not None:
        raise error


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_observ_env(request, monkeypatch):
    """Ensure a clean OBSERV_* environment for each test.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("OBSERV_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Gateway Fixtures (not autouse)
# =============================================================================


@pytest.fixture
def gateway() -> GatewayStub:
    return GatewayStub()


@pytest.fixture
def observ(gateway: GatewayStub) -> Observ:
    """Observ instance talking to the scripted gateway."""
    return Observ(
        api_key=TEST_API_KEY,
        endpoint=TEST_ENDPOINT,
        http_client=gateway.client(),
    )


def make_observ(gateway: GatewayStub, **settings: Any) -> Observ:
    settings.setdefault("api_key", TEST_API_KEY)
    settings.setdefault("endpoint", TEST_ENDPOINT)
    return Observ(http_client=gateway.client(), **settings)
