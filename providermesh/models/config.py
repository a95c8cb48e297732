"""Model configuration supplied by callers and the resolved form models receive."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ModelConfig(BaseModel):
    """Caller-supplied configuration.

    ``options`` is a flat key/value map. At resolution time each key is either
    matched against the model's declared capabilities (well-known) or forwarded
    verbatim (pass-through). ``additional`` is an opaque bag that is always
    forwarded without inspection.

    Attributes:
        options: Configuration keys and values, partitioned at resolution time
        additional: Opaque provider-specific settings, never validated
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    options: Dict[str, Any] = Field(default_factory=dict, description="Configuration keys and values")
    additional: Dict[str, Any] = Field(default_factory=dict, description="Opaque provider-specific settings")

    @classmethod
    def of(cls, **options: Any) -> "ModelConfig":
        return cls(options=options)

    def with_options(self, **options: Any) -> "ModelConfig":
        """Return a copy with ``options`` layered on top."""
        return ModelConfig(options={**self.options, **options}, additional=dict(self.additional))

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()


ConfigLike = Union[ModelConfig, Mapping[str, Any], None]


def as_model_config(config: ConfigLike) -> ModelConfig:
    """Coerce a mapping (or ``None``) to a :class:`ModelConfig`."""
    if config is None:
        return ModelConfig()
    if isinstance(config, ModelConfig):
        return config
    return ModelConfig(options=dict(config))


class ResolvedModelConfig(BaseModel):
    """Configuration a resolved model carries, after validation and merge.

    Attributes:
        values: Merged well-known keys, all accepted by the model's capabilities
        passthrough: Keys the model does not declare plus the caller's opaque bag, unmodified
    """

    model_config = ConfigDict(frozen=True)

    values: Dict[str, Any] = Field(default_factory=dict, description="Validated well-known configuration")
    passthrough: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific pass-through keys")

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Look a key up in the validated values first, then in the pass-through bag."""
        if key in self.values:
            return self.values[key]
        return self.passthrough.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Flatten into one mapping; validated values win over pass-through keys."""
        return {**self.passthrough, **self.values}
