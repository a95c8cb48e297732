"""Composition-root default registry.

Library code always receives a :class:`ProviderRegistry` explicitly. An
application that wants one process-wide registry initializes it once at
startup and fetches it where it wires things together::

    registry = initialize_default_registry()
    ...
    model = get_default_registry().get_provider_model("acme", "acme-1")
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from ..core.config import settings
from ..core.logging_config import get_logger
from .loader import load_plugin_providers
from .registry import ProviderFactoryLike, ProviderRegistry

logger = get_logger(__name__)

_default_registry: Optional[ProviderRegistry] = None


def get_default_registry() -> ProviderRegistry:
    """Get the default registry.

    Returns:
        The default ProviderRegistry

    Raises:
        RuntimeError: If the default registry has not been initialized
    """
    if _default_registry is None:
        raise RuntimeError("Default registry not initialized. Call initialize_default_registry() first.")
    return _default_registry


def set_default_registry(registry: ProviderRegistry) -> None:
    """Set the default registry.

    Args:
        registry: ProviderRegistry instance
    """
    global _default_registry
    _default_registry = registry


def initialize_default_registry(
    providers: Iterable[Tuple[str, ProviderFactoryLike]] = (),
    *,
    load_plugins: Optional[bool] = None,
) -> ProviderRegistry:
    """Build, populate and install the default registry.

    Args:
        providers: ``(provider_id, factory)`` pairs registered first, in order
        load_plugins: Whether to load entry-point providers afterwards
            (defaults to ``settings.load_plugins_on_init``)

    Returns:
        The new default ProviderRegistry

    Raises:
        DuplicateProviderError: If two explicit providers share an id or alias
    """
    global _default_registry

    registry = ProviderRegistry()
    for provider_id, factory in providers:
        registry.register_provider(provider_id, factory)

    if load_plugins if load_plugins is not None else settings.load_plugins_on_init:
        load_plugin_providers(registry)

    _default_registry = registry
    logger.info(f"Default registry initialized with providers: {list(registry.provider_ids())}")
    return registry


def reset_default_registry() -> None:
    """Reset the default registry.

    This is mainly useful for testing.
    """
    global _default_registry
    _default_registry = None
