"""Gateway pipeline: cache check, fallback, synthesis and telemetry.

One pipeline serves every provider adapter:

1. Build the request envelope and ask the gateway for a verdict.
2. ``cache_hit``: synthesize a native response; the provider is never called.
3. ``proceed``: call the provider, time it, and report the outcome in the
   background keyed by the verdict's trace id.

Any failure in step 1 or 2 falls back to calling the provider with the
original parameters and sends no telemetry. Provider errors are never
caught by the fallback: they propagate unchanged.
"""

from __future__ import annotations

import inspect
import logging
import time
from typing import TYPE_CHECKING, Any, TypeAlias

from observ.models import TelemetryCallback
from observ.request import CallOptions, build_completion_request
from observ.streaming import CaptureStream

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from observ.callbacks import CallbackSender
    from observ.config import Config
    from observ.models import GatewayVerdict
    from observ.providers.base import ProviderAdapter
    from observ.transport import GatewayTransport

    ProviderCall: TypeAlias = Callable[[], Awaitable[Any] | Any]

log = logging.getLogger(__name__)


async def _invoke(call: ProviderCall) -> Any:
    result = call()
    if inspect.isawaitable(result):
        result = await result
    return result


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


class GatewayPipeline:
    """Shared cache/fallback/telemetry flow for all wrapped providers."""

    def __init__(
        self,
        config: Config,
        transport: GatewayTransport,
        callbacks: CallbackSender,
    ) -> None:
        self._config = config
        self._transport = transport
        self._callbacks = callbacks

    async def _check(
        self,
        adapter: ProviderAdapter,
        params: Mapping[str, Any],
        options: CallOptions,
    ) -> tuple[GatewayVerdict, str]:
        model = adapter.resolve_model(params)
        request = build_completion_request(
            adapter.name,
            model,
            adapter.normalize(params),
            self._config.recall,
            self._config.environment,
            options.metadata,
            options.session_id,
        )
        return await self._transport.check(request), model

    async def complete(
        self,
        adapter: ProviderAdapter,
        params: Mapping[str, Any],
        call: ProviderCall,
        *,
        options: CallOptions | None = None,
    ) -> Any:
        """Run a non-streaming call through the gateway."""
        try:
            verdict, model = await self._check(adapter, params, options or CallOptions())
            if verdict.is_cache_hit:
                log.debug("Cache hit! Returning cached content")
                return adapter.build_response(str(verdict.content), model)
        except Exception as e:
            return await self._fallback(adapter, call, e)

        trace_id = str(verdict.trace_id)
        log.debug(
            "Cache miss, proceeding with %s API call (trace_id: %s)",
            adapter.name,
            trace_id,
        )
        start = time.perf_counter()
        try:
            response = await _invoke(call)
        except Exception as e:
            self._report_failure(trace_id, _elapsed_ms(start), e)
            raise
        duration_ms = _elapsed_ms(start)
        log.debug("%s API call completed in %dms", adapter.name, duration_ms)
        self._report(adapter, trace_id, response, duration_ms)
        return response

    async def stream(
        self,
        adapter: ProviderAdapter,
        params: Mapping[str, Any],
        call: ProviderCall,
        *,
        options: CallOptions | None = None,
    ) -> Any:
        """Run a streaming call through the gateway.

        Cache hits replay the content as a one-shot stream. Misses return the
        provider's stream behind a capture pipe that reports on completion.
        """
        try:
            verdict, model = await self._check(adapter, params, options or CallOptions())
            if verdict.is_cache_hit:
                log.debug("Cache hit! Simulating stream from cached content")
                return adapter.build_stream(str(verdict.content), model)
        except Exception as e:
            return await self._fallback(adapter, call, e)

        trace_id = str(verdict.trace_id)
        log.debug("Cache miss (streaming), trace_id: %s", trace_id)
        start = time.perf_counter()
        try:
            result = await _invoke(call)
        except Exception as e:
            self._report_failure(trace_id, _elapsed_ms(start), e)
            raise

        def on_complete(chunks: list[Any], error: BaseException | None) -> None:
            duration_ms = _elapsed_ms(start)
            self._callbacks.dispatch(
                TelemetryCallback(
                    trace_id=trace_id,
                    content=adapter.extract_stream_content(chunks),
                    duration_ms=duration_ms,
                    tokens_used=adapter.extract_stream_usage(chunks),
                    error=_describe(error) if error is not None else None,
                )
            )

        source = adapter.stream_source(result)
        if source is None:
            log.debug("Stream result has no chunk iterable; skipping capture")
            on_complete([], None)
            return result
        try:
            return adapter.replace_stream(result, CaptureStream(source, on_complete))
        except Exception as e:
            # The source is untouched, so the caller can still read it.
            log.debug("Could not capture %s stream: %s", adapter.name, e)
            on_complete([], None)
            return result

    async def _fallback(
        self, adapter: ProviderAdapter, call: ProviderCall, error: Exception
    ) -> Any:
        log.debug("Gateway error: %s", error)
        log.debug("Falling back to direct %s API call...", adapter.name)
        return await _invoke(call)

    def _report(
        self,
        adapter: ProviderAdapter,
        trace_id: str,
        response: Any,
        duration_ms: int,
    ) -> None:
        try:
            tool_calls = adapter.extract_tool_calls(response)
            callback = TelemetryCallback(
                trace_id=trace_id,
                content=adapter.extract_content(response),
                duration_ms=duration_ms,
                tokens_used=adapter.extract_usage(response),
                tool_calls=tuple(tool_calls) or None,
            )
        except Exception as e:
            log.debug("Could not extract telemetry for trace %s: %s", trace_id, e)
            return
        self._callbacks.dispatch(callback)

    def _report_failure(self, trace_id: str, duration_ms: int, error: Exception) -> None:
        self._callbacks.dispatch(
            TelemetryCallback(
                trace_id=trace_id,
                content="",
                duration_ms=duration_ms,
                tokens_used=0,
                error=_describe(error),
            )
        )
