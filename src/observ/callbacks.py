"""Fire-and-forget telemetry callbacks.

Delivery is best-effort: every failure is discarded, and the caller's
response never waits on a callback.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from observ.models import TelemetryCallback
    from observ.transport import GatewayTransport

log = logging.getLogger(__name__)


class CallbackSender:
    """Dispatches telemetry callbacks as background tasks."""

    def __init__(self, transport: GatewayTransport, *, timeout_s: float) -> None:
        self._transport = transport
        self._timeout_s = timeout_s
        # Strong references so pending tasks are not garbage collected.
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, callback: TelemetryCallback) -> None:
        """Schedule *callback* without awaiting it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running event loop; dropping callback for %s", callback.trace_id)
            return
        task = loop.create_task(self._send(callback))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, callback: TelemetryCallback) -> None:
        try:
            async with asyncio.timeout(self._timeout_s):
                await self._transport.send_callback(callback.to_wire())
        except Exception as e:
            log.debug("Callback for trace %s discarded: %s", callback.trace_id, e)

    async def drain(self) -> None:
        """Wait for all in-flight callbacks to finish."""
        while self._pending:
            await asyncio.gather(*tuple(self._pending), return_exceptions=True)
