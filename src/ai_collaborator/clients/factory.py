"""Factory for creating completion backends.

This module provides a centralized way to create backends based on provider
name, using a registry pattern that makes it easy to add new providers.
"""

import importlib
from typing import Any

from ..exceptions import InvalidConfigurationError
from .base import CompletionBackend

# registry of provider configurations
_PROVIDER_REGISTRY: dict[str, dict[str, Any]] = {
    "ollama": {
        "class_path": "ai_collaborator.clients.ollama.OllamaBackend",
        "requires_api_key": False,
        "default_model": "llama3:8b",
    },
    "openai": {
        "class_path": "ai_collaborator.clients.openai.OpenAIBackend",
        "requires_api_key": True,
        "default_model": "gpt-4o-mini",
    },
}


def get_available_providers() -> list[str]:
    """Get list of available provider names."""
    return list(_PROVIDER_REGISTRY.keys())


def get_default_model(provider: str) -> str:
    """Get the default model for a provider.

    Raises:
        InvalidConfigurationError: If provider is unknown.
    """
    return _get_provider_config(provider)["default_model"]


def create_backend(
    provider: str,
    model: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
) -> CompletionBackend:
    """Create a completion backend for the specified provider.

    Args:
        provider: The provider name (ollama, openai).
        model: Optional model override. If not provided, uses provider default.
        api_key: API key, required by providers that authenticate.
        base_url: Optional server url override.

    Returns:
        An initialized backend instance.

    Raises:
        InvalidConfigurationError: If provider is unknown or a required API key is missing.
    """
    config = _get_provider_config(provider)

    if config["requires_api_key"] and not api_key:
        raise InvalidConfigurationError(f"an API key is required for provider '{provider}'")

    backend_class = _import_backend_class(config["class_path"])
    return backend_class(
        api_key=api_key,
        model=model or config["default_model"],
        base_url=base_url,
    )


def _get_provider_config(provider: str) -> dict[str, Any]:
    if provider not in _PROVIDER_REGISTRY:
        raise InvalidConfigurationError(
            f"unknown provider: {provider}. Available: {get_available_providers()}"
        )
    return _PROVIDER_REGISTRY[provider]


def _import_backend_class(class_path: str) -> type[CompletionBackend]:
    """Dynamically import a backend class from its dotted path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
