"""Long-running operations.

An :class:`Operation` is a live handle to an asynchronous generation job. Its
state only moves along the edges of a strict state machine::

    starting   -> processing | canceled
    processing -> succeeded | failed | canceled

Terminal states (``succeeded``, ``failed``, ``canceled``) have no outgoing
edges. Re-applying the current state is allowed so that repeated polls stay
idempotent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.errors import ErrorInfo, InvalidStateTransitionError
from .enums import OperationState
from .result import GenerativeResult

ALLOWED_TRANSITIONS: Mapping[OperationState, FrozenSet[OperationState]] = {
    OperationState.starting: frozenset({OperationState.processing, OperationState.canceled}),
    OperationState.processing: frozenset(
        {OperationState.succeeded, OperationState.failed, OperationState.canceled}
    ),
    OperationState.succeeded: frozenset(),
    OperationState.failed: frozenset(),
    OperationState.canceled: frozenset(),
}


def can_transition(current: OperationState, target: OperationState) -> bool:
    """Whether ``current -> target`` is an edge of the state machine (or a no-op refresh)."""
    return current is target or target in ALLOWED_TRANSITIONS[current]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Operation(BaseModel):
    """Handle to a long-running generation.

    Attributes:
        id: Operation identifier, unique within the owning provider
        provider_id: Owning provider
        model_id: Model that runs the job
        state: Current lifecycle state
        result: Attached once the operation succeeded
        error: Attached once the operation failed
        created_at: Creation timestamp (UTC)
        updated_at: Last state change (UTC)
        metadata: Provider-specific progress information
    """

    model_config = ConfigDict(frozen=False, validate_assignment=False, protected_namespaces=())

    id: str = Field(..., min_length=1, description="Operation identifier")
    provider_id: str = Field(..., description="Owning provider")
    model_id: str = Field(..., description="Model that runs the job")
    state: OperationState = Field(default=OperationState.starting, description="Current lifecycle state")
    result: Optional[GenerativeResult] = Field(None, description="Attached once the operation succeeded")
    error: Optional[ErrorInfo] = Field(None, description="Attached once the operation failed")
    created_at: datetime = Field(default_factory=_utcnow, description="Creation timestamp (UTC)")
    updated_at: datetime = Field(default_factory=_utcnow, description="Last state change (UTC)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific progress information")

    @model_validator(mode="after")
    def _validate_payload(self) -> "Operation":
        _check_payload(self.state, self.result, self.error)
        return self

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def done(self) -> bool:
        return self.state.is_terminal

    def transition(
        self,
        target: OperationState,
        *,
        result: Optional[GenerativeResult] = None,
        error: Optional[ErrorInfo] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Operation":
        """Move to ``target`` in place.

        Raises:
            InvalidStateTransitionError: If the edge is not part of the state machine,
                or the payload does not match the target state.
        """
        if not can_transition(self.state, target):
            raise InvalidStateTransitionError(
                f"Operation '{self.id}' cannot move from {self.state.value} to {target.value}",
                provider_id=self.provider_id,
                model_id=self.model_id,
            )
        if target is self.state:
            result = result if result is not None else self.result
            error = error if error is not None else self.error
        try:
            _check_payload(target, result, error)
        except ValueError as exc:
            raise InvalidStateTransitionError(
                f"Operation '{self.id}': {exc}", provider_id=self.provider_id, model_id=self.model_id
            ) from exc
        changed = target is not self.state
        self.state = target
        self.result = result
        self.error = error
        if metadata:
            self.metadata = {**self.metadata, **metadata}
        if changed:
            self.updated_at = _utcnow()
        return self

    def apply(self, snapshot: "Operation") -> "Operation":
        """Bring this handle up to date with a freshly fetched snapshot."""
        if snapshot.id != self.id:
            raise InvalidStateTransitionError(
                f"Snapshot '{snapshot.id}' does not belong to operation '{self.id}'",
                provider_id=self.provider_id,
                model_id=self.model_id,
            )
        if self.state is OperationState.starting and snapshot.state in (OperationState.succeeded, OperationState.failed):
            # The provider moved through processing between two polls.
            self.transition(OperationState.processing)
        return self.transition(snapshot.state, result=snapshot.result, error=snapshot.error, metadata=snapshot.metadata)

    def snapshot(self) -> "Operation":
        """Detached deep copy, safe to hand out while the original keeps changing."""
        return self.model_copy(deep=True)


def _check_payload(state: OperationState, result: Optional[GenerativeResult], error: Optional[ErrorInfo]) -> None:
    if state is OperationState.succeeded:
        if result is None:
            raise ValueError("a succeeded operation needs a result")
        if error is not None:
            raise ValueError("a succeeded operation cannot carry an error")
    elif state is OperationState.failed:
        if error is None:
            raise ValueError("a failed operation needs an error")
        if result is not None:
            raise ValueError("a failed operation cannot carry a result")
    elif result is not None:
        raise ValueError(f"a {state.value} operation cannot carry a result")
