"""Factory for creating extraction providers.

Implements Factory Pattern for provider selection with registry pattern for extensibility.

Based on:
- Factory Pattern: https://refactoring.guru/design-patterns/factory-method/python
- Registry Pattern: Python Cookbook 3rd Edition, Recipe 9.22

Providers are built once at startup for every backend whose credential is
present; the caller then picks one by name for each extraction request.
"""

import logging

from invoicedesk.extraction.base import ExtractionProvider
from invoicedesk.extraction.gemini_provider import GeminiExtractionProvider
from invoicedesk.extraction.groq_provider import GroqExtractionProvider
from invoicedesk.shared.config import Settings
from invoicedesk.shared.errors import ExtractionError
from invoicedesk.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of available extraction providers.

    Maintains a mapping of provider names to their implementation classes.
    Supports runtime registration of new providers.
    """

    _providers: dict[str, type[ExtractionProvider]] = {
        "gemini": GeminiExtractionProvider,
        "groq": GroqExtractionProvider,
    }

    @classmethod
    def register(cls, name: str, provider_class: type[ExtractionProvider]) -> None:
        """Register a new provider.

        Args:
            name: Provider identifier (the `model` value clients send)
            provider_class: Provider class implementing ExtractionProvider interface
        """
        cls._providers[name] = provider_class
        logger.info(f"Registered extraction provider: {name}")

    @classmethod
    def get_provider_class(cls, name: str) -> type[ExtractionProvider]:
        """Get provider class by name.

        Raises:
            ValueError: If provider not found in registry
        """
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(
                f"Unknown extraction provider: '{name}'. Available providers: {available}"
            )
        return cls._providers[name]

    @classmethod
    def list_providers(cls) -> list[str]:
        return list(cls._providers.keys())


def create_extraction_provider(
    name: str, settings: Settings, storage: StorageProvider
) -> ExtractionProvider:
    """Instantiate one provider by name.

    Raises:
        ValueError: If the name is not registered
        ExtractionError: If the provider's credential is missing
    """
    provider_class = ProviderRegistry.get_provider_class(name)
    provider = provider_class(settings, storage)
    logger.info(f"Created extraction provider: {name}")
    return provider


def create_extraction_providers(
    settings: Settings, storage: StorageProvider
) -> dict[str, ExtractionProvider]:
    """Build every registered provider that is configured.

    Providers whose credential is missing are skipped with a warning. At
    least one provider is expected; if none is configured the service still
    starts, but every extraction request fails.

    Args:
        settings: Application settings
        storage: Storage provider documents are read from

    Returns:
        Mapping of provider name to ready provider
    """
    providers: dict[str, ExtractionProvider] = {}
    for name in ProviderRegistry.list_providers():
        try:
            providers[name] = create_extraction_provider(name, settings, storage)
        except ExtractionError as e:
            logger.warning(f"Extraction provider '{name}' is not available: {e.message}")

    if not providers:
        logger.warning(
            "No AI extraction provider is configured. "
            "Set APP_GEMINI_API_KEY and/or APP_GROQ_API_KEY."
        )
    return providers
