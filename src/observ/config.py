"""Configuration: frozen Config resolved from arguments and the environment."""

from __future__ import annotations

from dataclasses import dataclass
import os
from urllib.parse import urlparse

from dotenv import load_dotenv

from observ._http import (
    DEFAULT_CALLBACK_TIMEOUT_S,
    DEFAULT_ENDPOINT,
    DEFAULT_GATEWAY_TIMEOUT_S,
)
from observ.errors import ConfigurationError

load_dotenv()

_API_KEY_ENV_VAR = "OBSERV_API_KEY"
_ENDPOINT_ENV_VAR = "OBSERV_ENDPOINT"
_ENVIRONMENT_ENV_VAR = "OBSERV_ENVIRONMENT"
_DEBUG_ENV_VAR = "OBSERV_DEBUG"


@dataclass(frozen=True)
class Config:
    """Immutable configuration for an Observ instance.

    The API key is auto-resolved from ``OBSERV_API_KEY`` when not passed.

    Example:
        config = Config(api_key="obs_...", environment="staging")
    """

    #: Auto-resolved from ``OBSERV_API_KEY`` when *None*.
    api_key: str | None = None
    project_id: str = "default"
    #: Caching enabled flag, sent to the gateway as ``features.recall``.
    recall: bool = True
    #: Auto-resolved from ``OBSERV_ENVIRONMENT``, else ``"production"``.
    environment: str | None = None
    #: Auto-resolved from ``OBSERV_ENDPOINT``, else the hosted gateway.
    endpoint: str | None = None
    #: Auto-resolved from ``OBSERV_DEBUG=1`` when *None*.
    debug: bool | None = None
    gateway_timeout_s: float = DEFAULT_GATEWAY_TIMEOUT_S
    callback_timeout_s: float = DEFAULT_CALLBACK_TIMEOUT_S

    def __post_init__(self) -> None:
        """Auto-resolve environment values and validate configuration."""
        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_API_KEY_ENV_VAR))
        if not self.api_key:
            raise ConfigurationError(
                "API key required for Observ",
                hint=f"Set {_API_KEY_ENV_VAR} environment variable or pass api_key=...",
            )

        if self.environment is None:
            object.__setattr__(
                self,
                "environment",
                os.environ.get(_ENVIRONMENT_ENV_VAR) or "production",
            )
        if not isinstance(self.environment, str) or not self.environment.strip():
            raise ConfigurationError(
                "environment must be a non-empty string",
                hint="Pass environment='production' or 'development'.",
            )

        endpoint = self.endpoint
        if endpoint is None:
            endpoint = os.environ.get(_ENDPOINT_ENV_VAR) or DEFAULT_ENDPOINT
        parsed = urlparse(endpoint)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigurationError(
                f"Invalid gateway endpoint: {endpoint!r}",
                hint="Use an absolute http(s) URL such as https://api.observ.dev",
            )
        object.__setattr__(self, "endpoint", endpoint.rstrip("/"))

        if self.debug is None:
            object.__setattr__(self, "debug", os.environ.get(_DEBUG_ENV_VAR) == "1")

        if self.gateway_timeout_s <= 0:
            raise ConfigurationError(
                f"gateway_timeout_s must be > 0, got {self.gateway_timeout_s}",
                hint="This bounds the cache check before falling back to the provider.",
            )
        if self.callback_timeout_s <= 0:
            raise ConfigurationError(
                f"callback_timeout_s must be > 0, got {self.callback_timeout_s}",
                hint="This bounds each telemetry callback POST.",
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(api_key={'[REDACTED]' if self.api_key else None}, "
            f"project_id={self.project_id!r}, recall={self.recall}, "
            f"environment={self.environment!r}, endpoint={self.endpoint!r}, "
            f"debug={self.debug})"
        )

    __repr__ = __str__
