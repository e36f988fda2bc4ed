"""Provider registry for relmap.

The ``provider`` key of the ``[embedding]`` and ``[llm]`` config sections
names a registered factory; :meth:`ProviderRegistry.create` resolves it.
Example: ``[llm] provider = "ollama"`` → ``OllamaClassifier``.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from relmap.config import CONFIG_FILE
from relmap.exceptions import PluginError

if TYPE_CHECKING:
    from collections.abc import Callable

    from relmap.config import RelmapConfig

__all__ = ["CATEGORIES", "ProviderRegistry", "default_registry"]

logger = logging.getLogger(__name__)

# Each category is also the config section holding its ``provider`` key.
CATEGORIES = ("embedding", "llm")

# Modules whose import registers the built-in providers.
_BUILTIN_MODULES = ("relmap.embed", "relmap.llm")


class ProviderRegistry:
    """Maps ``(category, name)`` to a factory taking ``RelmapConfig``.

    When ``auto_discover`` is ``True``, the first lookup imports
    ``relmap.embed`` and ``relmap.llm``, whose ``__init__`` modules
    register the built-in providers.

    Usage::

        registry = ProviderRegistry()
        registry.register("llm", "ollama", lambda cfg: OllamaClassifier(cfg))
        classifier = registry.create("llm", config)  # uses config.llm.provider
    """

    def __init__(self, *, auto_discover: bool = False) -> None:
        self._factories: dict[str, dict[str, Callable[[RelmapConfig], Any]]] = {
            category: {} for category in CATEGORIES
        }
        self._auto_discover = auto_discover
        self._discovered = False

    def register(
        self,
        category: str,
        name: str,
        factory: Callable[[RelmapConfig], Any],
    ) -> None:
        """Register a provider factory.

        Raises:
            PluginError: If the category is unknown or the name is taken.
        """
        self._check_category(category)
        if name in self._factories[category]:
            raise PluginError(f"Provider '{name}' already registered in category '{category}'")

        self._factories[category][name] = factory
        logger.debug("Registered provider %s/%s", category, name)

    def _check_category(self, category: str) -> None:
        if category not in self._factories:
            raise PluginError(
                f"Unknown provider category '{category}'. Expected one of: {', '.join(CATEGORIES)}"
            )

    def _ensure_discovered(self) -> None:
        if self._discovered or not self._auto_discover:
            return
        self._discovered = True
        for module in _BUILTIN_MODULES:
            try:
                importlib.import_module(module)
            except ImportError as e:
                logger.warning("%s not available for auto-discovery: %s", module, e)

    def create(self, category: str, config: RelmapConfig) -> Any:
        """Build the provider selected by ``config``'s ``[category] provider`` key.

        Raises:
            PluginError: If the category is unknown or the configured
                provider is not registered.
        """
        self._ensure_discovered()
        self._check_category(category)

        name = getattr(config, category).provider
        factories = self._factories[category]
        if name not in factories:
            available = ", ".join(sorted(factories)) or "none"
            raise PluginError(
                f"Unknown {category} provider '{name}' "
                f"(set [{category}] provider in {CONFIG_FILE}). Available: {available}"
            )

        logger.info("Creating %s provider '%s'", category, name)
        return factories[name](config)

    def providers(self) -> dict[str, list[str]]:
        """Registered provider names, sorted, for every category."""
        self._ensure_discovered()
        return {category: sorted(names) for category, names in self._factories.items()}


default_registry = ProviderRegistry(auto_discover=True)
