"""Capability descriptors.

A :class:`Capability` declares one axis of a model's configuration support:
a boolean flag, an enumerated set of values, a numeric range, or an open
(free-form) value checked by an optional predicate.

The supported/unsupported question is answered with an explicit tri-state
(:class:`CapabilitySupport`). ``open`` means "supported, but the allowed values
cannot be enumerated"; in that state :meth:`Capability.supported_values`
returns ``None`` and callers must not treat any listing as exhaustive.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from .enums import CapabilityKind, CapabilitySupport

ValuePredicate = Callable[[Any], bool]


class _AnyValue:
    """Discovery wildcard: the capability only has to be supported."""

    _instance: Optional["_AnyValue"] = None

    def __new__(cls) -> "_AnyValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY_VALUE"


ANY_VALUE = _AnyValue()


class WellKnownCapability(str, Enum):
    """Capability names with an agreed meaning across providers.

    The capability namespace stays open; providers may declare any other name.
    """

    temperature = "temperature"
    top_p = "top_p"
    max_output_tokens = "max_output_tokens"
    candidate_count = "candidate_count"
    response_format = "response_format"
    response_schema = "response_schema"
    tools = "tools"
    stop_sequences = "stop_sequences"
    seed = "seed"
    concurrent_invocation = "concurrent_invocation"


class Capability(BaseModel):
    """Immutable declaration of one configuration axis of a model.

    Attributes:
        name: Configuration key this capability governs
        kind: How supported values are described
        supported: Whether the capability is supported at all
        values: Allowed values for ``choice`` capabilities (``None`` = not enumerable)
        minimum: Inclusive lower bound for ``range`` capabilities
        maximum: Inclusive upper bound for ``range`` capabilities
        integer: Whether ``range`` values must be integers
        default: Value contributed to the model defaults when the caller sets none
        description: Human-readable description
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Configuration key this capability governs")
    kind: CapabilityKind = Field(..., description="How supported values are described")
    supported: bool = Field(default=True, description="Whether the capability is supported at all")
    values: Optional[List[Any]] = Field(None, description="Allowed values for choice capabilities")
    minimum: Optional[float] = Field(None, description="Inclusive lower bound for range capabilities")
    maximum: Optional[float] = Field(None, description="Inclusive upper bound for range capabilities")
    integer: bool = Field(default=False, description="Whether range values must be integers")
    default: Any = Field(None, description="Default value contributed to the model defaults")
    description: Optional[str] = Field(None, description="Human-readable description")

    _predicate: Optional[ValuePredicate] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _check_shape(self) -> "Capability":
        if self.kind is CapabilityKind.range and self.minimum is not None and self.maximum is not None:
            if self.minimum > self.maximum:
                raise ValueError(f"capability '{self.name}': minimum {self.minimum} exceeds maximum {self.maximum}")
        if self.kind is not CapabilityKind.choice and self.values is not None:
            raise ValueError(f"capability '{self.name}': values are only allowed for choice capabilities")
        return self

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def flag(cls, name: str, supported: bool = True, **kwargs: Any) -> "Capability":
        """Boolean capability: ``True`` is accepted only when supported."""
        return cls(name=name, kind=CapabilityKind.flag, supported=supported, **kwargs)

    @classmethod
    def choice(cls, name: str, values: Optional[List[Any]], **kwargs: Any) -> "Capability":
        """Enumerated capability. ``values=None`` (or empty) means supported but not enumerable."""
        return cls(name=name, kind=CapabilityKind.choice, values=list(values) if values else None, **kwargs)

    @classmethod
    def range(
        cls,
        name: str,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
        *,
        integer: bool = False,
        **kwargs: Any,
    ) -> "Capability":
        """Numeric capability bounded by an inclusive interval."""
        return cls(name=name, kind=CapabilityKind.range, minimum=minimum, maximum=maximum, integer=integer, **kwargs)

    @classmethod
    def open(cls, name: str, predicate: Optional[ValuePredicate] = None, **kwargs: Any) -> "Capability":
        """Free-form capability, optionally checked by a provider-defined predicate."""
        capability = cls(name=name, kind=CapabilityKind.open, **kwargs)
        capability._predicate = predicate
        return capability

    @classmethod
    def unsupported(cls, name: str, kind: CapabilityKind = CapabilityKind.flag) -> "Capability":
        return cls(name=name, kind=kind, supported=False)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def support(self) -> CapabilitySupport:
        if not self.supported:
            return CapabilitySupport.unsupported
        if self.kind is CapabilityKind.open:
            return CapabilitySupport.open
        if self.kind is CapabilityKind.choice and not self.values:
            return CapabilitySupport.open
        return CapabilitySupport.enumerated

    def is_supported(self) -> bool:
        return self.supported

    def supported_values(self) -> Optional[List[Any]]:
        """Return the allowed values, or ``None`` when they cannot be listed.

        Ranges are not listed; use :meth:`describe_supported` for a printable form.
        """
        if self.support is not CapabilitySupport.enumerated:
            return None
        if self.kind is CapabilityKind.flag:
            return [True, False]
        if self.kind is CapabilityKind.choice:
            return list(self.values or [])
        return None

    def allowed_values(self) -> Any:
        """Structured supported set / range for error payloads.

        A list for flags and choices, ``{"minimum": ..., "maximum": ...}`` for
        ranges, ``None`` when open.
        """
        if not self.supported:
            return [False] if self.kind is CapabilityKind.flag else []
        if self.kind is CapabilityKind.range:
            return {"minimum": self.minimum, "maximum": self.maximum}
        return self.supported_values()

    def describe_supported(self) -> Optional[str]:
        """Printable supported set / range, or ``None`` when open."""
        if not self.supported:
            return "{False}" if self.kind is CapabilityKind.flag else "{}"
        if self.kind is CapabilityKind.range:
            low = "-inf" if self.minimum is None else _format_number(self.minimum, self.integer)
            high = "inf" if self.maximum is None else _format_number(self.maximum, self.integer)
            return f"[{low}, {high}]"
        values = self.supported_values()
        if values is None:
            return None
        return "{" + ", ".join(repr(v) for v in values) + "}"

    def accepts(self, value: Any) -> bool:
        """Supported-value test for one requested value."""
        if value is ANY_VALUE:
            return self.supported

        if not self.supported:
            # Explicitly turning an unsupported flag off is always fine.
            return self.kind is CapabilityKind.flag and value is False

        if self.kind is CapabilityKind.flag:
            return isinstance(value, bool)

        if self.kind is CapabilityKind.choice:
            if not self.values:
                return self._check_predicate(value)
            # 1 == True in Python; a bool only matches a listed bool.
            return any(v == value and isinstance(v, bool) is isinstance(value, bool) for v in self.values)

        if self.kind is CapabilityKind.range:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            if isinstance(value, float) and math.isnan(value):
                return False
            if self.integer and not float(value).is_integer():
                return False
            if self.minimum is not None and value < self.minimum:
                return False
            if self.maximum is not None and value > self.maximum:
                return False
            return True

        return self._check_predicate(value)

    def _check_predicate(self, value: Any) -> bool:
        if self._predicate is None:
            return True
        return bool(self._predicate(value))


def _format_number(value: float, integer: bool) -> str:
    if integer or float(value).is_integer():
        return str(int(value))
    return str(value)
