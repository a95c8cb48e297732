"""Error types raised by the ProviderMesh runtime.

Purpose:
- Provide one typed exception per failure the registry and the invocation
  surface can report.
- Carry the provider / model identity (when resolved) so multi-provider
  failures stay diagnosable.

Usage:
- Catch ``ProviderMeshError`` for any runtime failure and inspect
  ``provider_id`` / ``model_id``.
- Use ``to_error_info()`` to attach an error to an ``Operation``, a stream
  element or a ``Candidate``; ``error_from_info()`` rebuilds the exception.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class ErrorInfo(BaseModel):
    """Serializable description of a failure.

    Attributes:
        type: Exception class name (e.g. ``ProviderInvocationError``)
        message: Human-readable message without the identity suffix
        provider_id: Provider involved, if resolved
        model_id: Model involved, if resolved
        code: Opaque provider-specific error code
        details: Opaque provider-specific diagnostics
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    type: str = Field(..., description="Error type name")
    message: str = Field(..., description="Human-readable error message")
    provider_id: Optional[str] = Field(None, description="Provider involved, if resolved")
    model_id: Optional[str] = Field(None, description="Model involved, if resolved")
    code: Optional[str] = Field(None, description="Provider-specific error code")
    details: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific diagnostics")


class ProviderMeshError(Exception):
    """Base error for all runtime failures.

    Args:
        message: Human-readable error description.
        provider_id: Optional provider identifier involved in the failure.
        model_id: Optional model identifier involved in the failure.
    """

    def __init__(self, message: str, *, provider_id: Optional[str] = None, model_id: Optional[str] = None) -> None:
        self.message = message
        self.provider_id = provider_id
        self.model_id = model_id
        super().__init__(self._render())

    def _render(self) -> str:
        scope = []
        if self.provider_id is not None:
            scope.append(f"provider={self.provider_id}")
        if self.model_id is not None:
            scope.append(f"model={self.model_id}")
        if not scope:
            return self.message
        return f"{self.message} ({', '.join(scope)})"

    def bind(self, provider_id: Optional[str], model_id: Optional[str] = None) -> "ProviderMeshError":
        """Fill in the provider / model identity if it is not set yet."""
        if self.provider_id is None:
            self.provider_id = provider_id
        if self.model_id is None:
            self.model_id = model_id
        self.args = (self._render(),)
        return self

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            type=type(self).__name__,
            message=self.message,
            provider_id=self.provider_id,
            model_id=self.model_id,
        )


class UnknownProviderError(ProviderMeshError, LookupError):
    """Raised when a provider id or alias is not registered."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider not registered: '{provider_id}'", provider_id=provider_id)


class UnknownModelError(ProviderMeshError, LookupError):
    """Raised when a provider has no model with the requested id."""

    def __init__(self, provider_id: str, model_id: str) -> None:
        super().__init__(f"Model not found: '{model_id}'", provider_id=provider_id, model_id=model_id)


class DuplicateProviderError(ProviderMeshError):
    """Raised when a provider id or alias is registered twice."""

    def __init__(self, provider_id: str, *, existing: Optional[str] = None) -> None:
        message = f"Provider '{provider_id}' is already registered"
        if existing is not None and existing != provider_id:
            message = f"Provider alias '{provider_id}' is already registered by '{existing}'"
        super().__init__(message, provider_id=provider_id)


class InvalidConfigError(ProviderMeshError, ValueError):
    """Raised when a config value falls outside a model's declared capability.

    Args:
        key: The configuration key that was rejected.
        value: The rejected value.
        allowed: The supported values as a list, a range as
            ``{"minimum": ..., "maximum": ...}``, or ``None`` when it cannot be enumerated.
    """

    def __init__(
        self,
        key: str,
        value: Any,
        allowed: Optional[Any] = None,
        *,
        provider_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> None:
        self.key = key
        self.value = value
        self.allowed = allowed
        message = f"Invalid value for config key '{key}': {value!r}"
        if allowed is not None:
            message = f"{message}; supported: {_describe_allowed(allowed)}"
        super().__init__(message, provider_id=provider_id, model_id=model_id)

    def to_error_info(self) -> ErrorInfo:
        info = super().to_error_info()
        details = {"key": self.key, "value": _plain(self.value), "allowed": _plain(self.allowed)}
        return info.model_copy(update={"details": details})


class UnsupportedFeatureError(ProviderMeshError):
    """Raised when a resolved model lacks the requested feature."""


class UnsupportedInvocationError(UnsupportedFeatureError):
    """Raised when a model is invoked through a shape it does not declare."""


class UnknownOperationError(ProviderMeshError, LookupError):
    """Raised when the owning provider does not recognize an operation id."""

    def __init__(self, operation_id: str, *, provider_id: Optional[str] = None, model_id: Optional[str] = None) -> None:
        self.operation_id = operation_id
        super().__init__(f"Operation not found: '{operation_id}'", provider_id=provider_id, model_id=model_id)


class InvocationTimeoutError(ProviderMeshError, TimeoutError):
    """Raised when an invocation exceeds its caller-specified timeout."""

    def __init__(
        self, timeout: float, *, provider_id: Optional[str] = None, model_id: Optional[str] = None
    ) -> None:
        self.timeout = timeout
        super().__init__(f"Invocation timed out after {timeout}s", provider_id=provider_id, model_id=model_id)

    def to_error_info(self) -> ErrorInfo:
        info = super().to_error_info()
        return info.model_copy(update={"details": {"timeout": self.timeout}})


class InvocationCancelledError(ProviderMeshError):
    """Raised when a caller's cancellation signal stops an invocation."""


class ProviderUnavailableError(ProviderMeshError):
    """Raised when a provider's availability predicate is false at resolution time."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider '{provider_id}' is not configured", provider_id=provider_id)


class ProviderInvocationError(ProviderMeshError):
    """Wraps whatever failure a concrete provider reports.

    Args:
        message: Description of the failure.
        code: Opaque provider-specific error code (HTTP status, quota code, ...).
        details: Opaque provider-specific diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        provider_id: Optional[str] = None,
        model_id: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.code = code
        self.details = details or {}
        super().__init__(message, provider_id=provider_id, model_id=model_id)

    def to_error_info(self) -> ErrorInfo:
        info = super().to_error_info()
        return info.model_copy(update={"code": self.code, "details": dict(self.details)})


class InvalidStateTransitionError(ProviderMeshError):
    """Raised when an operation would move along an edge the state machine forbids."""


class InvalidPromptError(ProviderMeshError, ValueError):
    """Raised when a prompt cannot be turned into a valid message sequence."""


_ERROR_TYPES: Dict[str, Type[ProviderMeshError]] = {
    cls.__name__: cls
    for cls in (
        ProviderMeshError,
        UnsupportedFeatureError,
        UnsupportedInvocationError,
        InvocationCancelledError,
        InvalidStateTransitionError,
        InvalidPromptError,
    )
}


def error_from_info(info: ErrorInfo) -> ProviderMeshError:
    """Rebuild an exception from its serialized form.

    Types with structured constructors come back as ``ProviderInvocationError``
    carrying the original type name in ``details``; the message and identity
    are preserved.
    """
    if info.type == InvocationTimeoutError.__name__ and "timeout" in info.details:
        return InvocationTimeoutError(info.details["timeout"], provider_id=info.provider_id, model_id=info.model_id)
    if info.type == InvalidConfigError.__name__ and "key" in info.details:
        return InvalidConfigError(
            info.details["key"],
            info.details.get("value"),
            info.details.get("allowed"),
            provider_id=info.provider_id,
            model_id=info.model_id,
        )
    cls = _ERROR_TYPES.get(info.type)
    if cls is not None:
        return cls(info.message, provider_id=info.provider_id, model_id=info.model_id)
    details = dict(info.details)
    if info.type != ProviderInvocationError.__name__:
        details.setdefault("error_type", info.type)
    return ProviderInvocationError(
        info.message,
        provider_id=info.provider_id,
        model_id=info.model_id,
        code=info.code,
        details=details,
    )


def _describe_allowed(allowed: Any) -> str:
    if isinstance(allowed, dict):
        low = allowed.get("minimum")
        high = allowed.get("maximum")
        return f"[{'-inf' if low is None else _number(low)}, {'inf' if high is None else _number(high)}]"
    if isinstance(allowed, (list, tuple, set, frozenset)):
        return "{" + ", ".join(repr(v) for v in allowed) + "}"
    return str(allowed)


def _number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _plain(value: Any) -> Any:
    """JSON-friendly copy of a config value; anything else is kept as its repr."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    return repr(value)
