"""Capability matching, config validation and config merge.

Three questions are answered here, all without I/O:

* does a model satisfy a discovery query (feature + required capabilities)?
* is a caller's config satisfiable by a model?
* what is the effective config after merging every layer?

Merge precedence, lowest to highest::

    provider defaults < model defaults < caller config < per-call overrides

Model defaults are the capability defaults overlaid by
``ModelMetadata.default_config``.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..core.errors import InvalidConfigError
from ..models.config import ConfigLike, ModelConfig, ResolvedModelConfig, as_model_config
from ..models.enums import Feature
from ..models.metadata import ModelMetadata, ProviderMetadata


def capability_matches(metadata: ModelMetadata, key: str, value: Any) -> bool:
    """Whether ``metadata`` declares capability ``key`` and it accepts ``value``.

    ``ANY_VALUE`` only asks for the capability to be supported.
    """
    capability = metadata.capability(key)
    if capability is None:
        return False
    return capability.accepts(value)


def model_supports(metadata: ModelMetadata, feature: Feature, required: Optional[Mapping[str, Any]] = None) -> bool:
    """Discovery predicate for one model."""
    if not metadata.supports_feature(feature):
        return False
    for key, value in (required or {}).items():
        if not capability_matches(metadata, key, value):
            return False
    return True


def required_mapping(required: ConfigLike) -> Dict[str, Any]:
    """Flatten a discovery query's requirements into one mapping.

    The opaque ``additional`` bag of a :class:`ModelConfig` is not part of the
    query: it is never matched against capabilities.
    """
    if required is None:
        return {}
    if isinstance(required, ModelConfig):
        return dict(required.options)
    return dict(required)


def validate_options(
    metadata: ModelMetadata,
    options: Mapping[str, Any],
    *,
    provider_id: Optional[str] = None,
) -> None:
    """
    Check every declared key in ``options`` against the model's capabilities.

    Keys the model does not declare are not an error; they are pass-through.

    Raises:
        InvalidConfigError: Naming the key, the rejected value and the supported set / range.
    """
    capabilities = metadata.capability_map()
    for key, value in options.items():
        capability = capabilities.get(key)
        if capability is None:
            continue
        if not capability.accepts(value):
            raise InvalidConfigError(
                key,
                value,
                capability.allowed_values(),
                provider_id=provider_id,
                model_id=metadata.id,
            )


def model_defaults(metadata: ModelMetadata) -> Dict[str, Any]:
    defaults = {c.name: c.default for c in metadata.capabilities if c.supported and c.default is not None}
    defaults.update(metadata.default_config)
    return defaults


def merge_layers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Overlay mappings left to right; later layers win."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def partition(metadata: ModelMetadata, merged: Mapping[str, Any]) -> ResolvedModelConfig:
    """Split a merged mapping into validated values and pass-through keys."""
    declared = metadata.capability_map()
    values = {k: v for k, v in merged.items() if k in declared}
    passthrough = {k: v for k, v in merged.items() if k not in declared}
    return ResolvedModelConfig(values=values, passthrough=passthrough)


def resolve_config(
    provider: ProviderMetadata,
    metadata: ModelMetadata,
    config: ConfigLike = None,
) -> ResolvedModelConfig:
    """
    Validate a caller's config against a model and merge every default layer.

    The caller's ``additional`` bag is forwarded verbatim into ``passthrough``.
    Defaults are checked too, so every key in ``values`` is one the model accepts.

    Raises:
        InvalidConfigError: If a declared key carries a value the model does not accept,
            whether it came from the caller or from a provider / model default.
    """
    caller = as_model_config(config)
    validate_options(metadata, caller.options, provider_id=provider.id)
    merged = merge_layers(provider.default_config, model_defaults(metadata), caller.options)
    validate_options(metadata, merged, provider_id=provider.id)
    resolved = partition(metadata, merged)
    if caller.additional:
        resolved = ResolvedModelConfig(
            values=resolved.values,
            passthrough={**resolved.passthrough, **caller.additional},
        )
    return resolved


def apply_overrides(
    base: ResolvedModelConfig,
    metadata: ModelMetadata,
    overrides: ConfigLike,
    *,
    provider_id: Optional[str] = None,
) -> ResolvedModelConfig:
    """
    Layer per-call overrides on top of a resolved config without mutating it.

    Raises:
        InvalidConfigError: If an override violates a declared capability.
    """
    if overrides is None:
        return base
    extra = as_model_config(overrides)
    if not extra.options and not extra.additional:
        return base
    validate_options(metadata, extra.options, provider_id=provider_id)
    layered = partition(metadata, extra.options)
    return ResolvedModelConfig(
        values={**base.values, **layered.values},
        passthrough={**base.passthrough, **layered.passthrough, **extra.additional},
    )
