"""Provider / model registry, capability-indexed discovery and config resolution."""

from .base import (
    AllOf,
    AlwaysAvailable,
    Availability,
    EnvVarAvailability,
    ModelDirectory,
    ModuleAvailability,
    Provider,
    ProviderFactory,
)
from .default import (
    get_default_registry,
    initialize_default_registry,
    reset_default_registry,
    set_default_registry,
)
from .loader import load_plugin_providers
from .registry import ProviderRegistry
from .validation import capability_matches, model_supports, resolve_config, validate_options

__all__ = [
    "AllOf",
    "AlwaysAvailable",
    "Availability",
    "EnvVarAvailability",
    "ModelDirectory",
    "ModuleAvailability",
    "Provider",
    "ProviderFactory",
    "ProviderRegistry",
    "capability_matches",
    "get_default_registry",
    "initialize_default_registry",
    "load_plugin_providers",
    "model_supports",
    "reset_default_registry",
    "resolve_config",
    "set_default_registry",
    "validate_options",
]
