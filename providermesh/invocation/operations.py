"""In-flight operation tracking for concrete providers.

The registry never retains operations. A provider whose backend does not keep
job state itself (or a local/client provider running jobs in-process) can use
:class:`OperationStore` to remember the operations it started and to answer
``_fetch_operation`` / ``_cancel_operation`` with fresh snapshots.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional

from ..core.errors import ErrorInfo, UnknownOperationError
from ..core.logging_config import get_logger
from ..models.enums import OperationState
from ..models.operation import Operation
from ..models.result import GenerativeResult

logger = get_logger(__name__)


class OperationStore:
    """Async-safe store of operations owned by one provider.

    Every read returns a snapshot; callers never hold a reference to the
    stored operation, so polling always observes the store's current view.

    Attributes:
        provider_id: Provider owning the stored operations
        max_size: Maximum number of tracked operations (0 = unlimited)
    """

    def __init__(self, provider_id: str, max_size: int = 0) -> None:
        self._provider_id = provider_id
        self._max_size = max_size
        self._operations: Dict[str, Operation] = {}
        self._lock = asyncio.Lock()

    @property
    def provider_id(self) -> str:
        return self._provider_id

    async def create(
        self, model_id: str, *, operation_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None
    ) -> Operation:
        """Start tracking a new operation in ``starting`` state.

        When the store is full the oldest terminal operation is evicted; if
        none is terminal the oldest one is.
        """
        operation = Operation(
            id=operation_id or uuid.uuid4().hex,
            provider_id=self._provider_id,
            model_id=model_id,
            metadata=dict(metadata or {}),
        )
        async with self._lock:
            if self._max_size > 0 and len(self._operations) >= self._max_size:
                self._evict()
            self._operations[operation.id] = operation
        logger.debug(f"Tracking operation {operation.id} for model {model_id}")
        return operation.snapshot()

    def _evict(self) -> None:
        victim = next((op_id for op_id, op in self._operations.items() if op.is_terminal), None)
        if victim is None:
            victim = next(iter(self._operations))
        self._operations.pop(victim)
        logger.debug(f"Evicted operation {victim}")

    async def get(self, operation_id: str) -> Operation:
        """
        Return a snapshot of a tracked operation.

        Raises:
            UnknownOperationError: If the id is not tracked.
        """
        async with self._lock:
            return self._require(operation_id).snapshot()

    async def advance(
        self,
        operation_id: str,
        state: OperationState,
        *,
        result: Optional[GenerativeResult] = None,
        error: Optional[ErrorInfo] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Operation:
        """
        Move a tracked operation along the state machine.

        Raises:
            UnknownOperationError: If the id is not tracked.
            InvalidStateTransitionError: If the transition is not allowed.
        """
        async with self._lock:
            operation = self._require(operation_id)
            operation.transition(state, result=result, error=error, metadata=metadata)
            return operation.snapshot()

    async def cancel(self, operation_id: str) -> Operation:
        """Mark a tracked operation canceled; terminal operations are left as they are."""
        async with self._lock:
            operation = self._require(operation_id)
            if not operation.is_terminal:
                operation.transition(OperationState.canceled)
            return operation.snapshot()

    async def remove(self, operation_id: str) -> None:
        async with self._lock:
            self._operations.pop(operation_id, None)

    async def list_operations(self, *, include_terminal: bool = True) -> List[Operation]:
        async with self._lock:
            return [op.snapshot() for op in self._operations.values() if include_terminal or not op.is_terminal]

    def __len__(self) -> int:
        return len(self._operations)

    def _require(self, operation_id: str) -> Operation:
        operation = self._operations.get(operation_id)
        if operation is None:
            raise UnknownOperationError(operation_id, provider_id=self._provider_id)
        return operation
