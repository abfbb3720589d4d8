"""
LLM provider configuration for the generation capability.
"""

from grc_trainer.providers.llm_provider import (
    LLMProvider,
    ProviderConfig,
    PROVIDER_CONFIGS,
    resolve_provider,
    create_llm_client,
    get_provider_config,
    get_model_name,
)

__all__ = [
    "LLMProvider",
    "ProviderConfig",
    "PROVIDER_CONFIGS",
    "resolve_provider",
    "create_llm_client",
    "get_provider_config",
    "get_model_name",
]
