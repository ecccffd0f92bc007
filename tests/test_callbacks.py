"""Fire-and-forget telemetry delivery."""

from __future__ import annotations

import pytest

from observ import Config, TelemetryCallback
from observ.callbacks import CallbackSender
from observ.transport import GatewayTransport
from tests.conftest import TEST_API_KEY, TEST_ENDPOINT, GatewayStub

pytestmark = pytest.mark.unit

_CALLBACK = TelemetryCallback(trace_id="t1", content="ok", duration_ms=3, tokens_used=2)


def _sender(gateway: GatewayStub, *, timeout_s: float = 5.0) -> CallbackSender:
    transport = GatewayTransport(
        Config(api_key=TEST_API_KEY, endpoint=TEST_ENDPOINT), client=gateway.client()
    )
    return CallbackSender(transport, timeout_s=timeout_s)


@pytest.mark.asyncio
async def test_dispatch_returns_before_delivery(gateway: GatewayStub) -> None:
    sender = _sender(gateway)

    sender.dispatch(_CALLBACK)

    assert sender.pending == 1
    assert gateway.callback_requests == []

    await sender.drain()

    assert sender.pending == 0
    assert gateway.callbacks == [_CALLBACK.to_wire()]


@pytest.mark.asyncio
async def test_rejected_callback_is_discarded(gateway: GatewayStub) -> None:
    gateway.callback_status = 500
    sender = _sender(gateway)

    sender.dispatch(_CALLBACK)
    await sender.drain()

    assert len(gateway.callback_requests) == 1
    assert sender.pending == 0


@pytest.mark.asyncio
async def test_slow_callback_is_abandoned_after_timeout(gateway: GatewayStub) -> None:
    gateway.callback_delay_s = 5.0
    sender = _sender(gateway, timeout_s=0.05)

    sender.dispatch(_CALLBACK)
    await sender.drain()

    assert sender.pending == 0


def test_dispatch_without_event_loop_drops_callback(gateway: GatewayStub) -> None:
    sender = _sender(gateway)

    sender.dispatch(_CALLBACK)

    assert sender.pending == 0
    assert gateway.callback_requests == []
