"""Gateway wire constants shared across Observ.

Kept tiny so transport, callbacks and tests agree on paths and headers.
"""

from __future__ import annotations

COMPLETE_PATH = "/v1/llm/complete"
CALLBACK_PATH = "/v1/llm/callback"

# Rotated credential returned by the gateway for subsequent calls.
SESSION_TOKEN_HEADER = "x-session-token"

DEFAULT_ENDPOINT = "https://api.observ.dev"
DEFAULT_GATEWAY_TIMEOUT_S = 10.0
DEFAULT_CALLBACK_TIMEOUT_S = 5.0
