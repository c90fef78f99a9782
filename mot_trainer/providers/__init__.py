"""Adapter factory for the pluggable LLM backends."""

from typing import Optional

import httpx

from mot_trainer.config import PROVIDERS, Settings
from mot_trainer.errors import ConfigurationError
from mot_trainer.providers.base import BaseAdapter


def create_adapter(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> BaseAdapter:
    """Factory function to create the backend selected by settings.provider.

    Args:
        settings: Application settings
        transport: Optional httpx transport passed through to the adapter

    Returns:
        BaseAdapter instance

    Raises:
        ConfigurationError: If the provider is unknown or its credential is missing
    """
    provider = settings.provider.lower()

    if provider == "gemini":
        from mot_trainer.providers.gemini import GeminiAdapter
        return GeminiAdapter(settings, transport)
    elif provider == "groq":
        from mot_trainer.providers.groq import GroqAdapter
        return GroqAdapter(settings, transport)
    elif provider == "ollama":
        from mot_trainer.providers.ollama import OllamaAdapter
        return OllamaAdapter(settings, transport)
    else:
        raise ConfigurationError(
            f"Unsupported provider: '{provider}'. "
            f"Supported providers are: {', '.join(PROVIDERS)}"
        )


__all__ = ["create_adapter", "BaseAdapter"]
