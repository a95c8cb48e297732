"""Uniform invocation contract.

:class:`GenerativeModel` is what :meth:`ProviderRegistry.get_provider_model`
returns. Concrete providers subclass it and implement the protected hooks for
the invocation shapes their model metadata declares:

* ``sync``       -> :meth:`GenerativeModel._generate`
* ``streaming``  -> :meth:`GenerativeModel._generate_stream`
* ``operation``  -> :meth:`GenerativeModel._start_operation`,
  :meth:`GenerativeModel._fetch_operation` and
  :meth:`GenerativeModel._cancel_operation`

The public methods wrap those hooks with everything a caller relies on:
prompt normalization, feature and shape checks, per-call config overrides,
timeouts, cancellation, binding errors to the provider / model identity, and
the result and operation invariants.

A model instance is not assumed to be safe for concurrent invocations unless
it declares the ``concurrent_invocation`` capability.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Awaitable, List, Optional, Tuple, TypeVar, Union

from ..core.config import settings
from ..core.errors import (
    InvocationCancelledError,
    InvocationTimeoutError,
    ProviderInvocationError,
    ProviderMeshError,
    UnknownOperationError,
    UnsupportedFeatureError,
    UnsupportedInvocationError,
    error_from_info,
)
from ..core.logging_config import get_logger
from ..models.capability import WellKnownCapability
from ..models.config import ConfigLike, ResolvedModelConfig
from ..models.enums import Feature, InvocationShape, OperationState
from ..models.metadata import ModelMetadata
from ..models.operation import Operation
from ..models.request import GenerationRequest
from ..models.result import GenerativeResult
from ..registry.validation import apply_overrides
from .prompt import Prompt, normalize_prompt
from .streaming import GenerationStream

logger = get_logger(__name__)

T = TypeVar("T")
OperationRef = Union[Operation, str]


class GenerativeModel:
    """Base class for invocable models.

    Args:
        provider_id: Id of the owning provider
        metadata: Declared metadata of the model
        config: Validated, merged configuration
    """

    def __init__(self, provider_id: str, metadata: ModelMetadata, config: Optional[ResolvedModelConfig] = None) -> None:
        self._provider_id = provider_id
        self._metadata = metadata
        self._config = config or ResolvedModelConfig()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def id(self) -> str:
        return self._metadata.id

    @property
    def metadata(self) -> ModelMetadata:
        return self._metadata

    @property
    def config(self) -> ResolvedModelConfig:
        """Resolved configuration stored at resolution time."""
        return self._config

    @property
    def features(self) -> List[Feature]:
        return list(self._metadata.features)

    @property
    def invocation_shapes(self) -> List[InvocationShape]:
        return list(self._metadata.invocation_shapes)

    @property
    def is_concurrency_safe(self) -> bool:
        capability = self._metadata.capability(WellKnownCapability.concurrent_invocation.value)
        return capability is not None and capability.supported

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    async def _generate(self, request: GenerationRequest) -> GenerativeResult:
        """Produce a complete result (``sync`` shape)."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement _generate()")

    def _generate_stream(self, request: GenerationRequest) -> AsyncIterator[GenerativeResult]:
        """Return an async iterator of results (``streaming`` shape).

        Typically an ``async def`` generator; its ``finally`` block is where the
        provider connection gets closed.
        """
        raise NotImplementedError(f"{self.__class__.__name__} must implement _generate_stream()")

    async def _start_operation(self, request: GenerationRequest) -> Operation:
        """Submit a long-running job and return its handle in ``starting`` state."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement _start_operation()")

    async def _fetch_operation(self, operation_id: str) -> Operation:
        """Re-fetch the provider's current view of an operation.

        Raises:
            UnknownOperationError: If the provider does not recognize ``operation_id``.
        """
        raise NotImplementedError(f"{self.__class__.__name__} must implement _fetch_operation()")

    async def _cancel_operation(self, operation_id: str) -> None:
        """Ask the provider to stop a job. Best effort; may be a no-op."""
        return None

    async def aclose(self) -> None:
        """Release resources held by this model instance."""
        return None

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_request(
        self,
        prompt: Prompt,
        *,
        shape: InvocationShape,
        feature: Optional[Union[Feature, str]] = None,
        overrides: ConfigLike = None,
    ) -> GenerationRequest:
        """
        Validate the inputs of one invocation, before any I/O.

        Raises:
            UnsupportedInvocationError: If the model does not declare ``shape``.
            UnsupportedFeatureError: If the model does not support ``feature``.
            InvalidPromptError: If the prompt cannot be normalized.
            InvalidConfigError: If an override violates a declared capability.
        """
        if not self._metadata.supports_shape(shape):
            raise UnsupportedInvocationError(
                f"Model does not support {shape.value} invocation; declared: "
                f"{[s.value for s in self._metadata.invocation_shapes]}",
                provider_id=self._provider_id,
                model_id=self.id,
            )
        resolved_feature = self._resolve_feature(feature)
        try:
            messages = normalize_prompt(prompt)
            config = apply_overrides(self._config, self._metadata, overrides, provider_id=self._provider_id)
        except ProviderMeshError as exc:
            raise exc.bind(self._provider_id, self.id)
        return GenerationRequest(feature=resolved_feature, shape=shape, messages=messages, config=config)

    def _resolve_feature(self, feature: Optional[Union[Feature, str]]) -> Feature:
        if feature is None:
            return self._metadata.features[0]
        try:
            resolved = Feature(feature)
        except ValueError:
            raise UnsupportedFeatureError(
                f"Unknown feature: {feature!r}", provider_id=self._provider_id, model_id=self.id
            ) from None
        if not self._metadata.supports_feature(resolved):
            raise UnsupportedFeatureError(
                f"Model does not support feature '{resolved.value}'", provider_id=self._provider_id, model_id=self.id
            )
        return resolved

    # ------------------------------------------------------------------
    # Synchronous shape
    # ------------------------------------------------------------------

    async def invoke(
        self,
        prompt: Prompt,
        *,
        feature: Optional[Union[Feature, str]] = None,
        overrides: ConfigLike = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerativeResult:
        """
        Generate a complete result.

        Args:
            prompt: Text, a message, or a sequence of messages
            feature: Feature to invoke (defaults to the model's first feature)
            overrides: Per-call config layered over the resolved config
            timeout: Seconds before the call fails (defaults to settings)
            cancel_event: Set to abandon the call

        Returns:
            GenerativeResult with one or more candidates

        Raises:
            InvocationTimeoutError: If ``timeout`` elapses; the provider call is aborted.
            InvocationCancelledError: If ``cancel_event`` is set first.
            ProviderInvocationError: If the provider fails or every candidate failed.
        """
        request = self.build_request(prompt, shape=InvocationShape.sync, feature=feature, overrides=overrides)
        logger.debug(f"Invoking model: provider={self._provider_id}, model={self.id}, request={request.id}")
        result = await self._run(self._generate(request), timeout=timeout, cancel_event=cancel_event)
        return self._finalize_result(result)

    def _finalize_result(self, result: GenerativeResult) -> GenerativeResult:
        if result.provider_id is None or result.model_id is None:
            result = result.model_copy(
                update={
                    "provider_id": result.provider_id or self._provider_id,
                    "model_id": result.model_id or self.id,
                }
            )
        if result.error is not None:
            raise error_from_info(result.error).bind(self._provider_id, self.id)
        if result.all_candidates_failed:
            first = result.candidates[0].error
            raise ProviderInvocationError(
                "Every candidate failed",
                provider_id=self._provider_id,
                model_id=self.id,
                code=first.code if first is not None else None,
                details={"candidates": [c.error.model_dump() if c.error else None for c in result.candidates]},
            )
        for candidate in result.failed_candidates:
            logger.info(
                f"Candidate failed: provider={self._provider_id}, model={self.id}, index={candidate.index}"
            )
        return result

    # ------------------------------------------------------------------
    # Streaming shape
    # ------------------------------------------------------------------

    def invoke_streaming(
        self,
        prompt: Prompt,
        *,
        feature: Optional[Union[Feature, str]] = None,
        overrides: ConfigLike = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
        buffer_size: Optional[int] = None,
    ) -> GenerationStream:
        """
        Start a streamed generation.

        Validation happens immediately; the provider is contacted on the first
        iteration. Failures after that arrive as a terminal error element.

        Returns:
            GenerationStream, an async iterator and async context manager
        """
        request = self.build_request(prompt, shape=InvocationShape.streaming, feature=feature, overrides=overrides)
        logger.debug(f"Streaming model: provider={self._provider_id}, model={self.id}, request={request.id}")
        return GenerationStream(
            self._generate_stream(request),
            provider_id=self._provider_id,
            model_id=self.id,
            buffer_size=buffer_size,
            timeout=self._effective_timeout(timeout),
            cancel_event=cancel_event,
        )

    # ------------------------------------------------------------------
    # Long-running operation shape
    # ------------------------------------------------------------------

    async def invoke_async(
        self,
        prompt: Prompt,
        *,
        feature: Optional[Union[Feature, str]] = None,
        overrides: ConfigLike = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Operation:
        """
        Submit a long-running generation and return its handle.

        No task is held after this returns; poll with :meth:`get_operation`.

        Returns:
            Operation in ``starting`` state
        """
        request = self.build_request(prompt, shape=InvocationShape.operation, feature=feature, overrides=overrides)
        operation = await self._run(self._start_operation(request), timeout=timeout, cancel_event=cancel_event)
        if operation.state is not OperationState.starting:
            raise ProviderInvocationError(
                f"Provider returned operation '{operation.id}' in state {operation.state.value}, expected starting",
                provider_id=self._provider_id,
                model_id=self.id,
                code="operation_state",
            )
        logger.info(f"Operation started: provider={self._provider_id}, model={self.id}, operation={operation.id}")
        return operation

    async def get_operation(self, operation: OperationRef, *, timeout: Optional[float] = None) -> Operation:
        """
        Re-fetch an operation from the provider.

        Idempotent and safe to call repeatedly. When a handle is passed it is
        updated in place through the state machine and returned. Transport or
        provider failures while polling move the operation to ``failed`` with
        the error attached instead of raising.

        Raises:
            UnknownOperationError: If the provider does not recognize the id.
            UnsupportedInvocationError: If the model does not run operations.
        """
        self._require_shape(InvocationShape.operation)
        operation_id, handle = _split_ref(operation)
        if handle is not None and handle.is_terminal:
            return handle
        try:
            snapshot = await self._run(self._fetch_operation(operation_id), timeout=timeout, cancel_event=None)
        except UnknownOperationError as exc:
            raise exc.bind(self._provider_id, self.id)
        except (ProviderInvocationError, InvocationTimeoutError) as exc:
            logger.warning(
                f"Polling failed, marking operation failed: provider={self._provider_id}, model={self.id}, "
                f"operation={operation_id}, error={type(exc).__name__}"
            )
            return self._fail_operation(operation_id, handle, exc)

        if handle is None:
            return snapshot
        previous = handle.state
        handle.apply(snapshot)
        if handle.state is not previous:
            logger.info(
                f"Operation {handle.id}: {previous.value} -> {handle.state.value} "
                f"(provider={self._provider_id}, model={self.id})"
            )
        return handle

    def _fail_operation(self, operation_id: str, handle: Optional[Operation], exc: ProviderMeshError) -> Operation:
        info = exc.to_error_info()
        if handle is None:
            return Operation(
                id=operation_id,
                provider_id=self._provider_id,
                model_id=self.id,
                state=OperationState.failed,
                error=info,
            )
        if handle.state is OperationState.starting:
            # An operation id exists, so the provider accepted the job.
            handle.transition(OperationState.processing)
        return handle.transition(OperationState.failed, error=info)

    async def cancel_operation(self, operation: OperationRef) -> Operation:
        """
        Cancel a running operation.

        The provider is notified best-effort, bounded by
        ``settings.cancel_ack_timeout_seconds``; the handle moves to
        ``canceled`` regardless of the acknowledgment. Terminal operations are
        returned unchanged.
        """
        self._require_shape(InvocationShape.operation)
        operation_id, handle = _split_ref(operation)
        if handle is None:
            handle = await self.get_operation(operation_id)
        if handle.is_terminal:
            logger.debug(f"Operation {handle.id} already {handle.state.value}; nothing to cancel")
            return handle

        try:
            await asyncio.wait_for(self._cancel_operation(handle.id), timeout=settings.cancel_ack_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Provider did not acknowledge cancellation in {settings.cancel_ack_timeout_seconds}s: "
                f"provider={self._provider_id}, operation={handle.id}"
            )
        except UnknownOperationError:
            raise
        except Exception as exc:
            logger.warning(
                f"Provider cancellation failed: provider={self._provider_id}, operation={handle.id}, "
                f"error={type(exc).__name__}"
            )
        handle.transition(OperationState.canceled)
        logger.info(f"Operation canceled: provider={self._provider_id}, model={self.id}, operation={handle.id}")
        return handle

    async def wait_for_operation(
        self,
        operation: OperationRef,
        *,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Operation:
        """
        Poll until the operation reaches a terminal state.

        Args:
            operation: Handle or id
            poll_interval: Seconds between polls (defaults to settings)
            timeout: Seconds before giving up; the operation keeps running
            cancel_event: Set to cancel the operation and stop waiting

        Raises:
            InvocationTimeoutError: If ``timeout`` elapses first, including while
                a poll is still in flight. The handle is left as last observed.
        """
        interval = poll_interval if poll_interval is not None else settings.operation_poll_interval_seconds
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        if isinstance(operation, Operation):
            handle = operation
        else:
            handle = await self._poll_before(operation, deadline, timeout)

        while not handle.is_terminal:
            if cancel_event is not None and cancel_event.is_set():
                return await self.cancel_operation(handle)
            delay = interval
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise InvocationTimeoutError(timeout, provider_id=self._provider_id, model_id=self.id)
                delay = min(delay, remaining)
            await _sleep_or_event(delay, cancel_event)
            if cancel_event is not None and cancel_event.is_set():
                return await self.cancel_operation(handle)
            await self._poll_before(handle, deadline, timeout)
        return handle

    async def _poll_before(
        self, operation: OperationRef, deadline: Optional[float], timeout: Optional[float]
    ) -> Operation:
        """One ``get_operation`` call, abandoned once the wait deadline passes."""
        if deadline is None:
            return await self.get_operation(operation)
        remaining = deadline - asyncio.get_running_loop().time()
        try:
            if remaining <= 0:
                raise asyncio.TimeoutError
            return await asyncio.wait_for(self.get_operation(operation), remaining)
        except asyncio.TimeoutError:
            logger.warning(
                f"Waiting for operation timed out after {timeout}s: provider={self._provider_id}, model={self.id}"
            )
            raise InvocationTimeoutError(timeout, provider_id=self._provider_id, model_id=self.id) from None

    # ------------------------------------------------------------------
    # Shape dispatch
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: Prompt,
        *,
        feature: Optional[Union[Feature, str]] = None,
        overrides: ConfigLike = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerativeResult:
        """
        Produce a final result through the model's preferred invocation shape.

        Streams are drained to their terminal element; operations are polled
        until they finish.
        """
        shape = self._metadata.preferred_shape
        if shape is InvocationShape.sync:
            return await self.invoke(
                prompt, feature=feature, overrides=overrides, timeout=timeout, cancel_event=cancel_event
            )
        if shape is InvocationShape.streaming:
            stream = self.invoke_streaming(
                prompt, feature=feature, overrides=overrides, timeout=timeout, cancel_event=cancel_event
            )
            return self._finalize_result(await stream.collect())

        operation = await self.invoke_async(
            prompt, feature=feature, overrides=overrides, timeout=timeout, cancel_event=cancel_event
        )
        operation = await self.wait_for_operation(operation, timeout=timeout, cancel_event=cancel_event)
        if operation.state is OperationState.failed:
            raise error_from_info(operation.error).bind(self._provider_id, self.id)
        if operation.state is OperationState.canceled:
            raise InvocationCancelledError(
                f"Operation '{operation.id}' was canceled", provider_id=self._provider_id, model_id=self.id
            )
        return self._finalize_result(operation.result)

    # ------------------------------------------------------------------
    # Execution helpers
    # ------------------------------------------------------------------

    def _require_shape(self, shape: InvocationShape) -> None:
        if not self._metadata.supports_shape(shape):
            raise UnsupportedInvocationError(
                f"Model does not support {shape.value} invocation",
                provider_id=self._provider_id,
                model_id=self.id,
            )

    def _effective_timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else settings.default_timeout_seconds

    async def _run(
        self,
        awaitable: Awaitable[T],
        *,
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
    ) -> T:
        """Await a provider hook under a timeout and a cancellation signal.

        On timeout or cancellation the hook's task is cancelled and awaited, so
        its cleanup (closing connections) has run before this returns.
        """
        effective = self._effective_timeout(timeout)
        task = asyncio.ensure_future(awaitable)
        waiters = {task}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=effective, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if task in done:
            return self._unwrap(task)

        await _abort(task)
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Invocation cancelled: provider={self._provider_id}, model={self.id}")
            raise InvocationCancelledError("Invocation cancelled", provider_id=self._provider_id, model_id=self.id)
        logger.warning(f"Invocation timed out after {effective}s: provider={self._provider_id}, model={self.id}")
        raise InvocationTimeoutError(effective, provider_id=self._provider_id, model_id=self.id)

    def _unwrap(self, task: "asyncio.Future[T]") -> T:
        try:
            return task.result()
        except ProviderMeshError as exc:
            raise exc.bind(self._provider_id, self.id)
        except NotImplementedError as exc:
            raise UnsupportedInvocationError(str(exc), provider_id=self._provider_id, model_id=self.id) from exc
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise ProviderInvocationError(
                str(exc) or type(exc).__name__,
                provider_id=self._provider_id,
                model_id=self.id,
                code=type(exc).__name__,
            ) from exc

    async def __aenter__(self) -> "GenerativeModel":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self._provider_id}, model={self.id})"


def _split_ref(operation: OperationRef) -> Tuple[str, Optional[Operation]]:
    if isinstance(operation, Operation):
        return operation.id, operation
    return operation, None


async def _abort(task: "asyncio.Future[Any]") -> None:
    if task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.debug(f"Aborted invocation raised during cleanup: {type(exc).__name__}")


async def _sleep_or_event(delay: float, event: Optional[asyncio.Event]) -> None:
    if event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass
