"""Exception hierarchy for Observ.

Gateway errors never reach application code: the fallback policy catches
them and calls the wrapped provider directly. Provider SDK exceptions are
not wrapped and propagate exactly as the SDK raised them.
"""

from __future__ import annotations


class ObservError(Exception):
    """Base exception for all Observ errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ObservError):
    """Configuration validation or resolution failed."""


class GatewayError(ObservError):
    """The cache check against the gateway failed."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.endpoint = endpoint


class GatewayTimeout(GatewayError):
    """The gateway did not answer within the cache-check timeout."""


class GatewayConnectionError(GatewayError):
    """The gateway could not be reached."""


class GatewayHTTPError(GatewayError):
    """The gateway answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        hint: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint, endpoint=endpoint)
        self.status_code = status_code
        self.body = body


class GatewayProtocolError(GatewayError):
    """The gateway answered with a malformed or unexpected payload."""


class CallbackError(ObservError):
    """Sending a telemetry callback failed. Always discarded by the sender."""
