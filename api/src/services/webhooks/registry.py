"""
Inbound platform adapter registry.

Manages lookup of platform adapters by the {platform} URL segment.
"""

import logging

from src.services.webhooks.adapters import BUILTIN_ADAPTERS
from src.services.webhooks.protocol import PlatformAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry for platform adapters.

    Caches adapter instances for reuse.
    """

    def __init__(self) -> None:
        self._adapters: dict[str, type[PlatformAdapter]] = {}
        self._instances: dict[str, PlatformAdapter] = {}

        # Register built-in adapters
        for name, adapter_cls in BUILTIN_ADAPTERS.items():
            self.register(name, adapter_cls)

    def register(self, name: str, adapter_cls: type[PlatformAdapter]) -> None:
        """
        Register an adapter class.

        Args:
            name: Platform name (used for lookup).
            adapter_cls: Adapter class to register.
        """
        self._adapters[name] = adapter_cls
        # Clear cached instance if re-registering
        self._instances.pop(name, None)
        logger.debug(f"Registered platform adapter: {name}")

    def get(self, name: str) -> PlatformAdapter | None:
        """
        Get adapter instance by platform name.

        Returns:
            Adapter instance, or None if the platform is unknown.
        """
        if name in self._instances:
            return self._instances[name]

        adapter_cls = self._adapters.get(name)
        if not adapter_cls:
            return None

        instance = adapter_cls()
        self._instances[name] = instance
        return instance

    def platforms(self) -> list[str]:
        """Names of all registered platforms."""
        return sorted(self._adapters)


# Global registry instance
_registry: AdapterRegistry | None = None


def get_adapter_registry() -> AdapterRegistry:
    """
    Get the global adapter registry.

    Creates the registry on first access.
    """
    global _registry
    if _registry is None:
        _registry = AdapterRegistry()
    return _registry


def get_adapter(name: str) -> PlatformAdapter | None:
    """Convenience function to get an adapter by platform name."""
    return get_adapter_registry().get(name)
