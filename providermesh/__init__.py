"""ProviderMesh: provider-agnostic generative-AI client runtime.

Ask for a capability instead of a vendor: discover the (provider, model)
pairs that can serve it, resolve one into a :class:`GenerativeModel`, and
invoke it as a synchronous call, a stream or a long-running operation.
"""

from .core import (
    DuplicateProviderError,
    ErrorInfo,
    InvalidConfigError,
    InvalidPromptError,
    InvalidStateTransitionError,
    InvocationCancelledError,
    InvocationTimeoutError,
    ProviderInvocationError,
    ProviderMeshError,
    ProviderUnavailableError,
    UnknownModelError,
    UnknownOperationError,
    UnknownProviderError,
    UnsupportedFeatureError,
    UnsupportedInvocationError,
    get_logger,
    settings,
    setup_logging,
)
from .invocation import GenerationStream, GenerativeModel, OperationStore
from .models import (
    ANY_VALUE,
    Candidate,
    Capability,
    Feature,
    FinishReason,
    GenerationRequest,
    GenerativeResult,
    InvocationShape,
    Message,
    ModelConfig,
    ModelMatch,
    ModelMetadata,
    Operation,
    OperationState,
    ProviderMetadata,
    ProviderType,
    ResolvedModelConfig,
    Role,
    TokenUsage,
    WellKnownCapability,
)
from .registry import (
    AlwaysAvailable,
    EnvVarAvailability,
    ModuleAvailability,
    Provider,
    ProviderRegistry,
    get_default_registry,
    initialize_default_registry,
)

__version__ = "0.1.0"

__all__ = [
    "ANY_VALUE",
    "AlwaysAvailable",
    "Candidate",
    "Capability",
    "DuplicateProviderError",
    "EnvVarAvailability",
    "ErrorInfo",
    "Feature",
    "FinishReason",
    "GenerationRequest",
    "GenerationStream",
    "GenerativeModel",
    "GenerativeResult",
    "InvalidConfigError",
    "InvalidPromptError",
    "InvalidStateTransitionError",
    "InvocationCancelledError",
    "InvocationShape",
    "InvocationTimeoutError",
    "Message",
    "ModelConfig",
    "ModelMatch",
    "ModelMetadata",
    "ModuleAvailability",
    "Operation",
    "OperationState",
    "OperationStore",
    "Provider",
    "ProviderInvocationError",
    "ProviderMeshError",
    "ProviderMetadata",
    "ProviderRegistry",
    "ProviderType",
    "ProviderUnavailableError",
    "ResolvedModelConfig",
    "Role",
    "TokenUsage",
    "UnknownModelError",
    "UnknownOperationError",
    "UnknownProviderError",
    "UnsupportedFeatureError",
    "UnsupportedInvocationError",
    "WellKnownCapability",
    "get_default_registry",
    "get_logger",
    "initialize_default_registry",
    "settings",
    "setup_logging",
]
