"""Mistral chat adapter.

Mistral's chat response mirrors the OpenAI chat completion shape, so cache
hits are synthesized with the same model.
"""

from __future__ import annotations

from observ.providers.openai import OpenAIAdapter

DEFAULT_MISTRAL_MODEL = "mistral-large-latest"


class MistralAdapter(OpenAIAdapter):
    """``chat.complete_async`` shapes."""

    def __init__(self) -> None:
        """Initialize with Mistral's provider id and default model."""
        super().__init__("mistral", default_model=DEFAULT_MISTRAL_MODEL)
