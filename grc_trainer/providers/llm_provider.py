"""
Multi-Provider LLM Configuration

Centralized configuration for the text-generation capability behind the
content pipeline. Every provider is reached through an OpenAI-compatible
client; only providers that expose the Responses API web search tool can
ground generation with live search results.

Usage:
    from grc_trainer.providers.llm_provider import create_llm_client, get_provider_config

    client = create_llm_client()
    config = get_provider_config()

Environment Variables:
    LLM_PROVIDER: "openai" | "xai" | "deepseek" | "groq" | "ollama"
    LLM_PROVIDER_API_KEY: API key for the selected provider (falls back to provider-specific keys)

    # Provider-specific keys (fallbacks)
    OPENAI_API_KEY: OpenAI API key
    XAI_API_KEY: xAI/Grok API key
    DEEPSEEK_API_KEY: DeepSeek API key
    GROQ_API_KEY: Groq API key
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from openai import AsyncOpenAI


logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers"""
    OPENAI = "openai"
    XAI = "xai"
    DEEPSEEK = "deepseek"
    GROQ = "groq"
    OLLAMA = "ollama"           # Self-hosted via Ollama


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider"""
    name: str
    base_url: str
    api_key_env: str
    model_fast: str
    model_quality: str
    max_context: int
    supports_web_search: bool
    timeout: float = 120.0          # Request timeout in seconds
    max_retries: int = 2            # Transport-level retries inside the SDK


PROVIDER_CONFIGS: Dict[LLMProvider, ProviderConfig] = {
    LLMProvider.OPENAI: ProviderConfig(
        name="OpenAI",
        base_url="https://api.openai.com/v1",
        api_key_env="OPENAI_API_KEY",
        model_fast="gpt-4o-mini",
        model_quality="gpt-4o",
        max_context=128000,
        supports_web_search=True,
    ),
    LLMProvider.XAI: ProviderConfig(
        name="xAI Grok",
        base_url="https://api.x.ai/v1",
        api_key_env="XAI_API_KEY",
        model_fast="grok-3-mini",
        model_quality="grok-3",
        max_context=131072,
        supports_web_search=False,
    ),
    LLMProvider.DEEPSEEK: ProviderConfig(
        name="DeepSeek",
        base_url="https://api.deepseek.com",
        api_key_env="DEEPSEEK_API_KEY",
        model_fast="deepseek-chat",
        model_quality="deepseek-chat",
        max_context=128000,
        supports_web_search=False,
    ),
    LLMProvider.GROQ: ProviderConfig(
        name="Groq",
        base_url="https://api.groq.com/openai/v1",
        api_key_env="GROQ_API_KEY",
        model_fast="llama-3.3-70b-versatile",
        model_quality="llama-3.3-70b-versatile",
        max_context=128000,
        supports_web_search=False,
    ),
    LLMProvider.OLLAMA: ProviderConfig(
        name="Ollama (Self-Hosted)",
        base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/v1"),
        api_key_env="OLLAMA_API_KEY",
        model_fast="llama3.1:8b",
        model_quality="llama3.1:70b",
        max_context=128000,
        supports_web_search=False,
        timeout=300.0,                   # Longer timeout for self-hosted
        max_retries=3,
    ),
}


def resolve_provider(provider_name: Optional[str] = None) -> LLMProvider:
    """Resolve a provider name, falling back to OpenAI for unknown values"""
    name = (provider_name or os.getenv("LLM_PROVIDER", "openai")).lower()
    try:
        return LLMProvider(name)
    except ValueError:
        logger.warning(f"[LLM] Unknown provider '{name}', falling back to OpenAI")
        return LLMProvider.OPENAI


def create_llm_client(
    provider: Optional[LLMProvider] = None,
    timeout: Optional[float] = None,
) -> AsyncOpenAI:
    """
    Create an async OpenAI-compatible client for a provider.

    Args:
        provider: Provider to connect to (defaults to LLM_PROVIDER)
        timeout: Per-request timeout override in seconds

    Returns:
        Configured AsyncOpenAI client
    """
    provider = provider or resolve_provider()
    config = PROVIDER_CONFIGS[provider]

    api_key = os.getenv("LLM_PROVIDER_API_KEY") or os.getenv(config.api_key_env)
    if not api_key:
        if provider == LLMProvider.OLLAMA:
            api_key = "ollama"
        else:
            logger.warning(
                f"[LLM] No API key found for {config.name}; "
                f"set LLM_PROVIDER_API_KEY or {config.api_key_env}"
            )

    client = AsyncOpenAI(
        api_key=api_key,
        base_url=config.base_url,
        timeout=timeout or config.timeout,
        max_retries=config.max_retries,
    )
    logger.info(f"[LLM] Initialized {config.name} client ({config.base_url})")
    return client


def get_provider_config(provider: Optional[LLMProvider] = None) -> ProviderConfig:
    """Get the configuration of the selected provider"""
    return PROVIDER_CONFIGS[provider or resolve_provider()]


def get_model_name(tier: str = "quality", provider: Optional[LLMProvider] = None) -> str:
    """
    Get the model name for the specified tier.

    Args:
        tier: "fast" or "quality"
    """
    config = get_provider_config(provider)
    return config.model_fast if tier == "fast" else config.model_quality
