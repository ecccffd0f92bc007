"""Gateway transport: the bounded-time HTTP exchange with the gateway.

Owns the only cross-call state in Observ, the rotated session credential.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from observ._http import CALLBACK_PATH, COMPLETE_PATH, SESSION_TOKEN_HEADER
from observ.errors import (
    CallbackError,
    GatewayConnectionError,
    GatewayHTTPError,
    GatewayProtocolError,
    GatewayTimeout,
)
from observ.models import GatewayVerdict

if TYPE_CHECKING:
    from observ.config import Config
    from observ.request import CompletionRequest

log = logging.getLogger(__name__)

_UNREACHABLE_HINT = "Is the Observ gateway running at {endpoint}?"


@dataclass
class SessionAuth:
    """Static API key plus an optional gateway-rotated session token.

    A rotated token supersedes the key until replaced. Concurrent rotations
    are last-write-wins.
    """

    api_key: str
    session_token: str | None = None

    @property
    def authorization(self) -> str:
        return f"Bearer {self.session_token or self.api_key}"

    def rotate(self, token: str) -> None:
        self.session_token = token


class GatewayTransport:
    """POSTs cache checks and telemetry callbacks to the gateway."""

    def __init__(
        self, config: Config, *, client: httpx.AsyncClient | None = None
    ) -> None:
        """Initialize with config and an optional caller-owned HTTP client."""
        self._config = config
        self._endpoint = str(config.endpoint)
        self.auth = SessionAuth(api_key=str(config.api_key))
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the shared async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self.auth.authorization,
            "Content-Type": "application/json",
        }

    async def check(self, request: CompletionRequest) -> GatewayVerdict:
        """Ask the gateway for a cache verdict.

        Raises:
            GatewayTimeout: No answer within ``gateway_timeout_s``.
            GatewayConnectionError: The gateway could not be reached.
            GatewayHTTPError: Non-2xx status.
            GatewayProtocolError: Body is not a valid verdict.
        """
        timeout_s = self._config.gateway_timeout_s
        hint = _UNREACHABLE_HINT.format(endpoint=self._endpoint)
        client = self._get_client()
        try:
            async with asyncio.timeout(timeout_s):
                response = await client.post(
                    f"{self._endpoint}{COMPLETE_PATH}",
                    json=request.to_wire(),
                    headers=self._headers(),
                    timeout=timeout_s,
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise GatewayTimeout(
                f"Gateway timeout after {timeout_s:g}s",
                hint=hint,
                endpoint=self._endpoint,
            ) from e
        except httpx.HTTPError as e:
            raise GatewayConnectionError(
                f"Gateway connection error: {e}",
                hint=hint,
                endpoint=self._endpoint,
            ) from e

        log.debug("Gateway responded with status: %s", response.status_code)
        if not response.is_success:
            raise GatewayHTTPError(
                f"Gateway error {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
                endpoint=self._endpoint,
            )

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise GatewayProtocolError(
                "Gateway returned malformed JSON", endpoint=self._endpoint
            ) from e
        try:
            verdict = GatewayVerdict.model_validate(payload)
        except ValidationError as e:
            raise GatewayProtocolError(
                f"Gateway returned an unexpected verdict: {e.error_count()} error(s)",
                endpoint=self._endpoint,
            ) from e

        # Only a valid verdict may replace the credential.
        token = response.headers.get(SESSION_TOKEN_HEADER)
        if token:
            self.auth.rotate(token)
        log.debug("Gateway action: %s", verdict.action)
        return verdict

    async def send_callback(self, payload: dict[str, Any]) -> None:
        """POST a telemetry callback. Only the status is inspected."""
        timeout_s = self._config.callback_timeout_s
        try:
            response = await self._get_client().post(
                f"{self._endpoint}{CALLBACK_PATH}",
                json=payload,
                headers=self._headers(),
                timeout=timeout_s,
            )
        except httpx.HTTPError as e:
            raise CallbackError(f"Callback delivery failed: {e}") from e
        if not response.is_success:
            raise CallbackError(f"Callback rejected with status {response.status_code}")

    async def aclose(self) -> None:
        """Close the HTTP client when this transport created it."""
        client = self._client
        if client is None or not self._owns_client:
            return
        self._client = None
        await client.aclose()
