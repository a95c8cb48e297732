"""Provider and model metadata.

Metadata is declared by providers at registration time and never changes
afterwards; discovery is a pure filter over it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .capability import Capability
from .enums import Feature, InvocationShape, ProviderType


class ModelMetadata(BaseModel):
    """Declared support of one model.

    Attributes:
        id: Model identifier, unique within its provider
        name: Display name
        features: Supported features, in declaration order
        capabilities: Configuration axes the model declares
        invocation_shapes: Invocation shapes the model implements, preferred first
        default_config: Model-level configuration defaults
        description: Human-readable description
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Model identifier, unique within its provider")
    name: str = Field("", description="Display name")
    features: List[Feature] = Field(..., min_length=1, description="Supported features, in declaration order")
    capabilities: List[Capability] = Field(default_factory=list, description="Declared configuration axes")
    invocation_shapes: List[InvocationShape] = Field(
        default_factory=lambda: [InvocationShape.sync],
        min_length=1,
        description="Invocation shapes the model implements, preferred first",
    )
    default_config: Dict[str, Any] = Field(default_factory=dict, description="Model-level configuration defaults")
    description: Optional[str] = Field(None, description="Human-readable description")

    @field_validator("features", "invocation_shapes")
    @classmethod
    def _dedupe(cls, value: List[Any]) -> List[Any]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def _check(self) -> "ModelMetadata":
        names = [c.name for c in self.capabilities]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"model '{self.id}' declares capabilities more than once: {duplicates}")
        if not self.name:
            object.__setattr__(self, "name", self.id)
        return self

    def capability(self, name: str) -> Optional[Capability]:
        for capability in self.capabilities:
            if capability.name == name:
                return capability
        return None

    def capability_map(self) -> Dict[str, Capability]:
        return {c.name: c for c in self.capabilities}

    def supports_feature(self, feature: Feature) -> bool:
        return feature in self.features

    def supports_shape(self, shape: InvocationShape) -> bool:
        return shape in self.invocation_shapes

    @property
    def preferred_shape(self) -> InvocationShape:
        return self.invocation_shapes[0]


class ProviderMetadata(BaseModel):
    """Identity of a provider.

    Attributes:
        id: Provider identifier, unique within a registry
        name: Display name
        type: Where the provider's models run
        aliases: Alternative identifiers resolving to this provider
        default_config: Provider-level configuration defaults (lowest precedence)
        description: Human-readable description
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Provider identifier, unique within a registry")
    name: str = Field("", description="Display name")
    type: ProviderType = Field(..., description="Where the provider's models run")
    aliases: List[str] = Field(default_factory=list, description="Alternative identifiers")
    default_config: Dict[str, Any] = Field(default_factory=dict, description="Provider-level configuration defaults")
    description: Optional[str] = Field(None, description="Human-readable description")

    @model_validator(mode="after")
    def _default_name(self) -> "ProviderMetadata":
        if not self.name:
            object.__setattr__(self, "name", self.id)
        return self


class ProviderDescriptor(BaseModel):
    """Snapshot of one registration, shaped for an HTTP exposure layer.

    Attributes:
        provider: Provider identity
        configured: Result of the availability predicate when the snapshot was taken
        models: Declared models, in declaration order
    """

    model_config = ConfigDict(frozen=True)

    provider: ProviderMetadata
    configured: bool
    models: List[ModelMetadata] = Field(default_factory=list)


class ModelMatch(BaseModel):
    """One discovery hit: a (provider, model) pair.

    Attributes:
        provider_id: Registered provider id (never an alias)
        provider_type: Where the provider's models run
        model: Metadata of the matching model
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str
    provider_type: ProviderType
    model: ModelMetadata

    @property
    def model_id(self) -> str:
        return self.model.id

    def as_pair(self) -> tuple:
        return (self.provider_id, self.model.id)
