"""
LLM provider factory and initialization.
"""

from functools import lru_cache

from academic_bot.config import get_settings
from academic_bot.integrations.llm.base import BaseLLM, LLMResponse
from academic_bot.integrations.llm.groq import GroqLLM


def get_llm_provider(provider: str | None = None) -> BaseLLM:
    """
    Get LLM provider instance.

    Args:
        provider: Provider name ('groq')
                  If None, uses settings.llm_provider

    Returns:
        LLM provider instance
    """
    provider = provider or get_settings().llm_provider

    if provider == "groq":
        return GroqLLM()
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")


@lru_cache(maxsize=1)
def get_default_llm() -> BaseLLM:
    """Get cached default LLM provider."""
    return get_llm_provider()


__all__ = [
    "BaseLLM",
    "LLMResponse",
    "GroqLLM",
    "get_llm_provider",
    "get_default_llm",
]
