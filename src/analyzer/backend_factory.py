# src/analyzer/backend_factory.py — v1
"""Factory: instantiate an analysis backend from its provider name."""

from __future__ import annotations

import importlib
import logging

from codeauditor.analyzer.base_backend import BaseAnalysisBackend
from codeauditor.config.settings import Settings

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "codeauditor.analyzer.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "codeauditor.analyzer.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_backend(settings: Settings, **kwargs: object) -> BaseAnalysisBackend:
    """Instantiate the configured backend adapter.

    Args:
        settings: Application settings (provider, model, API keys).
        **kwargs: Extra adapter arguments, overriding settings.

    Raises:
        UnsupportedProviderError: If the provider is not registered.
    """
    provider = settings.backend_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported analysis backend: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    init_kwargs = dict(kwargs)
    init_kwargs.setdefault("model", settings.backend_model)
    init_kwargs.setdefault("max_tokens", settings.backend_max_tokens)
    init_kwargs.setdefault("temperature", settings.backend_temperature)
    if provider == "anthropic":
        init_kwargs.setdefault("api_key", settings.anthropic_api_key)
    elif provider == "openai":
        init_kwargs.setdefault("api_key", settings.openai_api_key)
        init_kwargs.setdefault("base_url", settings.openai_base_url)

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])
    logger.debug("Creating analysis backend: provider=%s, model=%s", provider, init_kwargs["model"])
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom backend adapter (fully qualified class path)."""
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered analysis backend: %s → %s", name, class_path)


def _import_class(class_path: str) -> type:
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
