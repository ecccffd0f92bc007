"""Observ: gateway-backed caching and tracing for LLM provider clients."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self, TypeVar

from observ.callbacks import CallbackSender
from observ.config import Config
from observ.errors import ConfigurationError
from observ.pipeline import GatewayPipeline
from observ.providers.anthropic import AnthropicAdapter
from observ.providers.language_model import ObservedLanguageModel
from observ.providers.mistral import MistralAdapter
from observ.providers.openai import OpenAIAdapter
from observ.transport import GatewayTransport
from observ.wrappers import install_wrapper

if TYPE_CHECKING:
    import httpx

    from observ.transport import SessionAuth

log = logging.getLogger(__name__)

ClientT = TypeVar("ClientT")

_DEBUG_FORMAT = "[Observ] %(message)s"


def _enable_debug_logging() -> None:
    """Send ``observ`` diagnostics to stderr. Idempotent."""
    package_logger = logging.getLogger("observ")
    package_logger.setLevel(logging.DEBUG)
    for handler in package_logger.handlers:
        if getattr(handler, "_observ_debug", False):
            return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
    handler._observ_debug = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)


class Observ:
    """Entry point: wraps provider clients so completions go through the gateway.

    Example:
        observ = Observ(api_key="obs_...", environment="staging")
        client = observ.openai(AsyncOpenAI())
        reply = await client.chat.completions.create(model="gpt-4o", messages=[...])

        tagged = client.chat.completions.with_metadata({"user_id": "u-1"})
        reply = await tagged.create(model="gpt-4o", messages=[...])
    """

    def __init__(
        self,
        config: Config | None = None,
        /,
        *,
        http_client: httpx.AsyncClient | None = None,
        **settings: Any,
    ) -> None:
        """Create from a Config or from Config fields as keyword arguments."""
        if config is not None and settings:
            raise ConfigurationError(
                "Pass either a Config or keyword settings, not both",
                hint="Observ(Config(api_key=...)) or Observ(api_key=...)",
            )
        self.config = config if config is not None else Config(**settings)
        if self.config.debug:
            _enable_debug_logging()

        self._transport = GatewayTransport(self.config, client=http_client)
        self._callbacks = CallbackSender(
            self._transport, timeout_s=self.config.callback_timeout_s
        )
        self._pipeline = GatewayPipeline(self.config, self._transport, self._callbacks)

    @property
    def auth(self) -> SessionAuth:
        """Credential state shared by every wrapped client of this instance."""
        return self._transport.auth

    @property
    def pipeline(self) -> GatewayPipeline:
        return self._pipeline

    # --- provider clients -------------------------------------------------

    def openai(self, client: ClientT, *, provider: str = "openai") -> ClientT:
        """Wrap ``client.chat.completions.create`` of an async OpenAI client."""
        install_wrapper(
            client.chat.completions,  # type: ignore[attr-defined]
            "create",
            OpenAIAdapter(provider),
            self._pipeline,
        )
        return client

    def xai(self, client: ClientT) -> ClientT:
        """Wrap an OpenAI-compatible xAI client."""
        return self.openai(client, provider="xai")

    def openrouter(self, client: ClientT) -> ClientT:
        """Wrap an OpenAI-compatible OpenRouter client."""
        return self.openai(client, provider="openrouter")

    def anthropic(self, client: ClientT) -> ClientT:
        """Wrap ``client.messages.create`` of an async Anthropic client."""
        install_wrapper(
            client.messages,  # type: ignore[attr-defined]
            "create",
            AnthropicAdapter(),
            self._pipeline,
        )
        return client

    def mistral(self, client: ClientT) -> ClientT:
        """Wrap ``client.chat.complete_async`` of a Mistral client."""
        install_wrapper(
            client.chat,  # type: ignore[attr-defined]
            "complete_async",
            MistralAdapter(),
            self._pipeline,
            streaming=False,
        )
        return client

    def wrap(self, model: Any) -> ObservedLanguageModel:
        """Wrap a unified language model (``do_generate``/``do_stream``)."""
        for attr in ("do_generate", "do_stream"):
            if not callable(getattr(model, attr, None)):
                raise ConfigurationError(
                    f"Cannot wrap {type(model).__name__}: missing {attr}()",
                    hint="wrap() expects a model exposing do_generate and do_stream.",
                )
        return ObservedLanguageModel(model, self._pipeline)

    # --- lifecycle --------------------------------------------------------

    async def flush(self) -> None:
        """Wait for in-flight telemetry callbacks."""
        await self._callbacks.drain()

    async def aclose(self) -> None:
        """Flush callbacks and close the HTTP client this instance created."""
        await self.flush()
        await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"Observ({self.config})"
