"""Provider adapters."""

from .anthropic import AnthropicAdapter
from .base import ProviderAdapter
from .language_model import LanguageModel, LanguageModelAdapter, ObservedLanguageModel
from .mistral import MistralAdapter
from .openai import OpenAIAdapter

__all__ = [
    "AnthropicAdapter",
    "LanguageModel",
    "LanguageModelAdapter",
    "MistralAdapter",
    "ObservedLanguageModel",
    "OpenAIAdapter",
    "ProviderAdapter",
]
