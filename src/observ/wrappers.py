"""In-place wrappers for SDK resources such as ``client.chat.completions``.

``install_wrapper`` swaps one method on an SDK resource for a version that
runs through the gateway pipeline, and adds ``with_metadata`` /
``with_session_id``. Those return new bound handles; the resource and the
installed wrapper hold no per-call state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self

from observ.request import CallOptions

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from observ.pipeline import GatewayPipeline
    from observ.providers.base import ProviderAdapter

log = logging.getLogger(__name__)


class ObservedResource:
    """A wrapped SDK method bound to immutable per-call options."""

    def __init__(
        self,
        resource: Any,
        method_name: str,
        original: Callable[..., Any],
        adapter: ProviderAdapter,
        pipeline: GatewayPipeline,
        *,
        options: CallOptions | None = None,
        streaming: bool = True,
    ) -> None:
        self._resource = resource
        self._method_name = method_name
        self._original = original
        self._adapter = adapter
        self._pipeline = pipeline
        self._options = options or CallOptions()
        self._streaming = streaming

    @property
    def options(self) -> CallOptions:
        return self._options

    def _bind(self, options: CallOptions) -> Self:
        return type(self)(
            self._resource,
            self._method_name,
            self._original,
            self._adapter,
            self._pipeline,
            options=options,
            streaming=self._streaming,
        )

    def with_metadata(self, metadata: Mapping[str, Any] | None) -> Self:
        """Return a handle whose calls carry *metadata* to the gateway."""
        return self._bind(self._options.with_metadata(metadata))

    def with_session_id(self, session_id: str | None) -> Self:
        """Return a handle whose calls carry an external session id."""
        return self._bind(self._options.with_session_id(session_id))

    async def create(self, **params: Any) -> Any:
        """Call the wrapped method through the gateway pipeline."""

        def call() -> Any:
            return self._original(**params)

        if self._streaming and params.get("stream"):
            return await self._pipeline.stream(
                self._adapter, params, call, options=self._options
            )
        return await self._pipeline.complete(
            self._adapter, params, call, options=self._options
        )

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name == self._method_name:
            return self.create
        return getattr(self._resource, name)


def install_wrapper(
    resource: Any,
    method_name: str,
    adapter: ProviderAdapter,
    pipeline: GatewayPipeline,
    *,
    streaming: bool = True,
) -> ObservedResource:
    """Patch ``resource.<method_name>`` in place and return the wrapper.

    Installing twice on the same resource returns the existing wrapper.
    """
    current = getattr(resource, method_name)
    existing = getattr(current, "__self__", None)
    if isinstance(existing, ObservedResource):
        log.debug("%s.%s is already wrapped", type(resource).__name__, method_name)
        return existing

    wrapper = ObservedResource(
        resource, method_name, current, adapter, pipeline, streaming=streaming
    )
    setattr(resource, method_name, wrapper.create)
    setattr(resource, "with_metadata", wrapper.with_metadata)  # noqa: B010
    setattr(resource, "with_session_id", wrapper.with_session_id)  # noqa: B010
    return wrapper
