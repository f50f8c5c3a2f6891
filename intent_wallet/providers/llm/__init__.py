from typing import Any, Dict, Optional, Type

from .anthropic import AnthropicProvider
from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)
from .openai import OpenAIProvider

PROVIDER_ALIAS_MAP: Dict[str, str] = {
    "claude": "anthropic",
    "gpt": "openai",
}

# Registry of available LLM providers
PROVIDER_REGISTRY: Dict[str, Type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


def canonical_provider_name(name: str) -> str:
    """Normalize provider aliases to their canonical identifier."""

    return PROVIDER_ALIAS_MAP.get(name.lower(), name.lower())


def get_llm_provider(settings: Any, provider_name: Optional[str] = None, **kwargs: Any) -> Optional[LLMProvider]:
    """
    Instantiate the configured LLM provider.

    Returns None when no API key is configured for it, in which case the
    assistant runs on its deterministic fast paths only.
    """
    resolved = canonical_provider_name(provider_name or settings.llm_provider)
    if resolved not in PROVIDER_REGISTRY:
        available = ", ".join(PROVIDER_REGISTRY)
        raise ValueError(f"Unsupported provider '{resolved}'. Available providers: {available}")

    if resolved == "anthropic":
        if not settings.anthropic_api_key:
            return None
        return AnthropicProvider(api_key=settings.anthropic_api_key, model=settings.anthropic_model, **kwargs)

    if not settings.openai_api_key:
        return None
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        **kwargs,
    )


__all__ = [
    "AnthropicProvider",
    "LLMMessage",
    "LLMProvider",
    "LLMProviderAPIError",
    "LLMProviderAuthError",
    "LLMProviderError",
    "LLMProviderRateLimitError",
    "LLMResponse",
    "OpenAIProvider",
    "PROVIDER_REGISTRY",
    "canonical_provider_name",
    "get_llm_provider",
]
