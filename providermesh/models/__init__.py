"""Data model of the runtime.

Every entity is a pydantic model, so it serializes to and from JSON and exposes
a JSON Schema (see :mod:`providermesh.models.schema`).
"""

from .capability import ANY_VALUE, Capability, WellKnownCapability
from .config import ModelConfig, ResolvedModelConfig, as_model_config
from .enums import (
    CapabilityKind,
    CapabilitySupport,
    Feature,
    FinishReason,
    InvocationShape,
    OperationState,
    ProviderType,
    Role,
)
from .message import (
    File,
    FunctionCall,
    FunctionCallPart,
    FunctionResponse,
    FunctionResponsePart,
    InlineFile,
    InlineFilePart,
    LocalFile,
    Message,
    MessagePart,
    RemoteFile,
    RemoteFilePart,
    TextPart,
    file_part,
)
from .metadata import ModelMatch, ModelMetadata, ProviderDescriptor, ProviderMetadata
from .operation import ALLOWED_TRANSITIONS, Operation, can_transition
from .request import GenerationRequest
from .result import Candidate, GenerativeResult, TokenUsage

__all__ = [
    "ANY_VALUE",
    "ALLOWED_TRANSITIONS",
    "Candidate",
    "Capability",
    "CapabilityKind",
    "CapabilitySupport",
    "Feature",
    "File",
    "FinishReason",
    "FunctionCall",
    "FunctionCallPart",
    "FunctionResponse",
    "FunctionResponsePart",
    "GenerationRequest",
    "GenerativeResult",
    "InlineFile",
    "InlineFilePart",
    "InvocationShape",
    "LocalFile",
    "Message",
    "MessagePart",
    "ModelConfig",
    "ModelMatch",
    "ModelMetadata",
    "Operation",
    "OperationState",
    "ProviderDescriptor",
    "ProviderMetadata",
    "ProviderType",
    "RemoteFile",
    "RemoteFilePart",
    "ResolvedModelConfig",
    "Role",
    "TextPart",
    "TokenUsage",
    "WellKnownCapability",
    "as_model_config",
    "can_transition",
    "file_part",
]
