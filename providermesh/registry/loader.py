"""Provider plugin loading.

External packages plug providers in without touching this codebase by
exposing a factory in the ``providermesh.providers`` entry-point group
(configurable with ``PROVIDERMESH_PROVIDER_ENTRY_POINT_GROUP``)::

    [project.entry-points."providermesh.providers"]
    acme = "acme_providermesh:AcmeProvider"

The entry-point name is the provider id the factory is registered under.

Loading is tolerant: a plugin that fails to import, returns the wrong type or
collides with an existing registration is logged and skipped, and the rest
still load.
"""

from __future__ import annotations

import logging
from importlib import metadata
from typing import Iterable, List, Optional

from ..core.config import settings
from ..core.errors import ProviderMeshError
from .registry import ProviderRegistry

_LOGGER = logging.getLogger(__name__)


def _iter_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    """Return the entry points of ``group``.

    Kept as a separate function so tests can replace the installed
    distributions with their own entry points.
    """
    return metadata.entry_points().select(group=group)


def load_plugin_providers(registry: ProviderRegistry, group: Optional[str] = None) -> List[str]:
    """
    Register every provider exposed through the plugin entry-point group.

    Args:
        registry: Registry to register into
        group: Entry-point group (defaults to ``settings.provider_entry_point_group``)

    Returns:
        Ids of the providers registered by this call, in load order
    """
    group = group or settings.provider_entry_point_group
    loaded: List[str] = []
    for ep in _iter_entry_points(group):
        if registry.has_provider(ep.name):
            _LOGGER.warning("ProviderLoader: skipping entry point %s; provider id already registered", ep.name)
            continue
        try:
            factory = ep.load()
            registry.register_provider(ep.name, factory)
        except (ProviderMeshError, ValueError) as exc:
            _LOGGER.warning(
                "ProviderLoader: rejected provider; name=%s entry_point=%s error=%s",
                ep.name,
                ep.value,
                exc,
            )
            continue
        except Exception as exc:
            _LOGGER.warning(
                "ProviderLoader: failed to load provider; name=%s entry_point=%s error=%s",
                ep.name,
                ep.value,
                type(exc).__name__,
            )
            continue
        loaded.append(ep.name)

    if loaded:
        _LOGGER.info("ProviderLoader: loaded %d plugin provider(s) from %s: %s", len(loaded), group, loaded)
    return loaded
