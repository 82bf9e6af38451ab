# src/llm/client_factory.py — v1
"""Factory: instantiate retrieval and generation clients from settings.

Providers are registered by class path and imported lazily, so an unused
provider SDK never needs to be importable.
"""

from __future__ import annotations

import importlib
import logging

from protoscope.config.settings import Settings
from protoscope.llm.base_client import BaseGenerationClient, BaseRetrievalClient
from protoscope.llm.retry import BackoffPolicy

logger = logging.getLogger(__name__)

_RETRIEVAL_REGISTRY: dict[str, str] = {
    "perplexity": "protoscope.llm.adapters.perplexity_adapter.PerplexityAdapter",
}

_GENERATION_REGISTRY: dict[str, str] = {
    "openai": "protoscope.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_retrieval_client(settings: Settings) -> BaseRetrievalClient:
    """Instantiate the configured retrieval adapter.

    Raises:
        UnsupportedProviderError: If the provider is not registered.
    """
    adapter_cls = _resolve(_RETRIEVAL_REGISTRY, settings.retrieval_provider)
    logger.debug(
        "Creating retrieval client: provider=%s, model=%s",
        settings.retrieval_provider, settings.retrieval_model,
    )
    return adapter_cls(
        model=settings.retrieval_model,
        api_key=settings.perplexity_api_key,
        base_url=settings.retrieval_base_url,
        timeout_s=settings.retrieval_timeout_s,
        policy=BackoffPolicy.from_settings(settings),
    )


def create_generation_client(settings: Settings) -> BaseGenerationClient:
    """Instantiate the configured generation adapter.

    Raises:
        UnsupportedProviderError: If the provider is not registered.
    """
    adapter_cls = _resolve(_GENERATION_REGISTRY, settings.generation_provider)
    logger.debug(
        "Creating generation client: provider=%s, model=%s",
        settings.generation_provider, settings.generation_model,
    )
    return adapter_cls(
        model=settings.generation_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_s=settings.generation_timeout_s,
        policy=BackoffPolicy.from_settings(settings),
    )


def register_retrieval_provider(name: str, class_path: str) -> None:
    """Register a custom retrieval adapter."""
    _RETRIEVAL_REGISTRY[name] = class_path
    logger.info("Registered retrieval provider: %s → %s", name, class_path)


def register_generation_provider(name: str, class_path: str) -> None:
    """Register a custom generation adapter."""
    _GENERATION_REGISTRY[name] = class_path
    logger.info("Registered generation provider: %s → %s", name, class_path)


def _resolve(registry: dict[str, str], provider: str) -> type:
    if provider not in registry:
        raise UnsupportedProviderError(
            f"Unsupported provider: {provider!r}. "
            f"Available: {', '.join(sorted(registry))}"
        )
    module_path, class_name = registry[provider].rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
