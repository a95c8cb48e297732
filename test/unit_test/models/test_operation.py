"""Unit tests for the operation state machine."""

import pytest
from pydantic import ValidationError

from providermesh.core.errors import ErrorInfo, InvalidStateTransitionError
from providermesh.models.enums import FinishReason, OperationState
from providermesh.models.message import Message
from providermesh.models.operation import ALLOWED_TRANSITIONS, Operation, can_transition
from providermesh.models.result import Candidate, GenerativeResult

TERMINAL = [OperationState.succeeded, OperationState.failed, OperationState.canceled]


def _result() -> GenerativeResult:
    return GenerativeResult(candidates=[Candidate(message=Message.model("ok"), finish_reason=FinishReason.stop)])


def _error() -> ErrorInfo:
    return ErrorInfo(type="ProviderInvocationError", message="boom")


def _operation(state=OperationState.starting) -> Operation:
    return Operation(id="op-1", provider_id="mock", model_id="m1", state=state)


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OperationState.starting, OperationState.processing),
            (OperationState.starting, OperationState.canceled),
            (OperationState.processing, OperationState.succeeded),
            (OperationState.processing, OperationState.failed),
            (OperationState.processing, OperationState.canceled),
        ],
    )
    def test_allowed_edges(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("terminal", TERMINAL)
    def test_terminal_states_have_no_exits(self, terminal):
        assert ALLOWED_TRANSITIONS[terminal] == frozenset()
        for target in OperationState:
            if target is not terminal:
                assert not can_transition(terminal, target)

    def test_starting_cannot_skip_processing(self):
        assert not can_transition(OperationState.starting, OperationState.succeeded)

    def test_refresh_is_allowed(self):
        assert can_transition(OperationState.processing, OperationState.processing)


class TestTransition:
    def test_happy_path(self):
        operation = _operation()
        created = operation.updated_at
        operation.transition(OperationState.processing)
        operation.transition(OperationState.succeeded, result=_result())
        assert operation.is_terminal
        assert operation.done
        assert operation.result.text == "ok"
        assert operation.updated_at >= created

    def test_invalid_edge_raises(self):
        operation = _operation()
        with pytest.raises(InvalidStateTransitionError):
            operation.transition(OperationState.succeeded, result=_result())
        assert operation.state is OperationState.starting

    @pytest.mark.parametrize("terminal", TERMINAL)
    def test_nothing_leaves_a_terminal_state(self, terminal):
        operation = _operation(OperationState.processing)
        if terminal is OperationState.succeeded:
            operation.transition(terminal, result=_result())
        elif terminal is OperationState.failed:
            operation.transition(terminal, error=_error())
        else:
            operation.transition(terminal)
        with pytest.raises(InvalidStateTransitionError):
            operation.transition(OperationState.processing)

    def test_succeeded_needs_result(self):
        operation = _operation(OperationState.processing)
        with pytest.raises(InvalidStateTransitionError):
            operation.transition(OperationState.succeeded)

    def test_failed_needs_error(self):
        operation = _operation(OperationState.processing)
        with pytest.raises(InvalidStateTransitionError):
            operation.transition(OperationState.failed)

    def test_payload_checked_at_construction(self):
        with pytest.raises(ValidationError):
            Operation(id="x", provider_id="mock", model_id="m1", state=OperationState.processing, result=_result())

    def test_metadata_is_merged(self):
        operation = _operation()
        operation.transition(OperationState.processing, metadata={"progress": 0.5})
        operation.transition(OperationState.processing, metadata={"eta": 3})
        assert operation.metadata == {"progress": 0.5, "eta": 3}


class TestApply:
    def test_apply_moves_through_processing(self):
        handle = _operation()
        snapshot = _operation(OperationState.processing)
        snapshot.transition(OperationState.succeeded, result=_result())
        handle.apply(snapshot)
        assert handle.state is OperationState.succeeded
        assert handle.result is not None

    def test_apply_rejects_foreign_snapshot(self):
        other = Operation(id="op-2", provider_id="mock", model_id="m1")
        with pytest.raises(InvalidStateTransitionError):
            _operation().apply(other)

    def test_apply_cannot_revive_terminal(self):
        handle = _operation()
        handle.transition(OperationState.canceled)
        with pytest.raises(InvalidStateTransitionError):
            handle.apply(_operation(OperationState.processing))

    def test_snapshot_is_detached(self):
        handle = _operation()
        snapshot = handle.snapshot()
        handle.transition(OperationState.processing)
        assert snapshot.state is OperationState.starting
