"""
Generation Provider Registry - Registration and lookup for generation providers

Providers register themselves at import time with the @register decorator.
The registry stores classes and creates a fresh instance on every get().

Usage:
    @register("gemini")
    class GeminiProvider(GenerationProviderBase):
        ...

    provider = GenerationProviderRegistry.get("gemini")
"""

from typing import Dict, List, Optional, Type

from .base import GenerationProviderBase


class GenerationProviderRegistry:
    """Central registry for generation providers"""

    _providers: Dict[str, Type[GenerationProviderBase]] = {}

    @classmethod
    def register(cls, provider_id: str, provider_class: Type[GenerationProviderBase]) -> None:
        # Re-registration replaces the class (reloading in tests)
        cls._providers[provider_id] = provider_class

    @classmethod
    def get(cls, provider_id: str) -> GenerationProviderBase:
        """
        Get a fresh provider instance by ID.

        Raises:
            ValueError: If provider_id is not registered
        """
        if provider_id not in cls._providers:
            available = list(cls._providers.keys())
            raise ValueError(
                f"Unknown generation provider: '{provider_id}'. "
                f"Available providers: {available}"
            )
        return cls._providers[provider_id]()

    @classmethod
    def get_optional(cls, provider_id: str) -> Optional[GenerationProviderBase]:
        try:
            return cls.get(provider_id)
        except ValueError:
            return None

    @classmethod
    def list_providers(cls) -> List[str]:
        return list(cls._providers.keys())

    @classmethod
    def is_registered(cls, provider_id: str) -> bool:
        return provider_id in cls._providers

    @classmethod
    def clear(cls) -> None:
        cls._providers.clear()


def register(provider_id: str):
    """
    Decorator to register a provider class.

    Args:
        provider_id: Unique identifier used in the command node's provider property
    """
    def decorator(cls: Type[GenerationProviderBase]) -> Type[GenerationProviderBase]:
        GenerationProviderRegistry.register(provider_id, cls)
        return cls
    return decorator
