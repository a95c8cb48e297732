"""JSON Schema export for every serializable entity.

An HTTP exposure layer uses these schemas to keep its wire bodies in lock-step
with the runtime without the runtime depending on any HTTP concern.
"""

from __future__ import annotations

from typing import Any, Dict, Type

from pydantic import BaseModel, TypeAdapter

from ..core.errors import ErrorInfo
from .capability import Capability
from .config import ModelConfig, ResolvedModelConfig
from .message import File, Message, MessagePart
from .metadata import ModelMatch, ModelMetadata, ProviderDescriptor, ProviderMetadata
from .operation import Operation
from .request import GenerationRequest
from .result import Candidate, GenerativeResult, TokenUsage

ENTITY_MODELS: Dict[str, Type[BaseModel]] = {
    "Capability": Capability,
    "ModelMetadata": ModelMetadata,
    "ProviderMetadata": ProviderMetadata,
    "ProviderDescriptor": ProviderDescriptor,
    "ModelMatch": ModelMatch,
    "ModelConfig": ModelConfig,
    "ResolvedModelConfig": ResolvedModelConfig,
    "Message": Message,
    "TokenUsage": TokenUsage,
    "Candidate": Candidate,
    "GenerativeResult": GenerativeResult,
    "Operation": Operation,
    "GenerationRequest": GenerationRequest,
    "ErrorInfo": ErrorInfo,
}

# Tagged unions are not classes; they get a TypeAdapter instead.
UNION_ADAPTERS: Dict[str, TypeAdapter] = {
    "File": TypeAdapter(File),
    "MessagePart": TypeAdapter(MessagePart),
}


def json_schema_for(name: str, *, mode: str = "validation") -> Dict[str, Any]:
    """Return the JSON Schema of one entity by name.

    Raises:
        KeyError: If ``name`` is not a known entity.
    """
    if name in ENTITY_MODELS:
        return ENTITY_MODELS[name].model_json_schema(mode=mode)
    if name in UNION_ADAPTERS:
        return UNION_ADAPTERS[name].json_schema(mode=mode)
    raise KeyError(f"unknown entity: name={name!r}")


def export_json_schemas(*, mode: str = "validation") -> Dict[str, Dict[str, Any]]:
    """Return the JSON Schema of every entity, keyed by entity name."""
    names = list(ENTITY_MODELS) + list(UNION_ADAPTERS)
    return {name: json_schema_for(name, mode=mode) for name in names}
