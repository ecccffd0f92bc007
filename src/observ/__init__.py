"""Observ: semantic caching and tracing for LLM provider SDKs.

Public API:
    - Observ: wraps OpenAI, Anthropic, Mistral, xAI, OpenRouter clients and
      unified language models
    - Config: configuration dataclass
    - CallOptions: per-call metadata/session id
    - normalize_messages / build_completion_request: the gateway envelope
"""

from __future__ import annotations

import logging

from observ.client import Observ
from observ.config import Config
from observ.errors import (
    CallbackError,
    ConfigurationError,
    GatewayConnectionError,
    GatewayError,
    GatewayHTTPError,
    GatewayProtocolError,
    GatewayTimeout,
    ObservError,
)
from observ.messages import CanonicalMessage, ToolCall, normalize_messages
from observ.models import GatewayVerdict, TelemetryCallback
from observ.request import CallOptions, CompletionRequest, build_completion_request

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("observ-sdk")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("observ").addHandler(logging.NullHandler())

__all__ = [
    "CallOptions",
    "CallbackError",
    "CanonicalMessage",
    "CompletionRequest",
    "Config",
    "ConfigurationError",
    "GatewayConnectionError",
    "GatewayError",
    "GatewayHTTPError",
    "GatewayProtocolError",
    "GatewayTimeout",
    "GatewayVerdict",
    "Observ",
    "ObservError",
    "TelemetryCallback",
    "ToolCall",
    "build_completion_request",
    "normalize_messages",
]
