"""Streaming invocation.

:class:`GenerationStream` wraps a provider's async iterator of
:class:`GenerativeResult` elements and enforces the streaming contract:

* elements are delivered strictly in provider order;
* a producer task runs ahead of the consumer by at most ``buffer_size``
  elements, then blocks (no unbounded buffering);
* token counts never decrease between consecutive elements;
* the sequence ends with a terminal element (every candidate finished) or a
  single error element; nothing follows either;
* ``aclose()``, leaving ``async with``, the caller's cancel event or task
  cancellation stop the producer and close the provider iterator, and no
  element is delivered once cancellation has been observed.

Usage:
    async with model.invoke_streaming("Tell me a story") as stream:
        async for element in stream:
            print(element.text)
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional, Set

from ..core.config import settings
from ..core.errors import (
    InvocationCancelledError,
    InvocationTimeoutError,
    ProviderInvocationError,
    ProviderMeshError,
)
from ..core.logging_config import get_logger
from ..models.result import GenerativeResult

logger = get_logger(__name__)

_END = object()


class GenerationStream:
    """Ordered, finite, non-restartable sequence of generation results.

    Args:
        source: Provider async iterator of results
        provider_id: Provider producing the stream
        model_id: Model producing the stream
        buffer_size: Maximum elements buffered ahead of the consumer
        timeout: Overall deadline in seconds for the whole stream
        cancel_event: Caller's cancellation signal
    """

    def __init__(
        self,
        source: AsyncIterator[GenerativeResult],
        *,
        provider_id: str,
        model_id: str,
        buffer_size: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._source = source
        self._provider_id = provider_id
        self._model_id = model_id
        self._buffer_size = buffer_size or settings.stream_buffer_size
        self._queue: Optional[asyncio.Queue] = None
        self._timeout = timeout
        self._cancel_event = cancel_event
        self._producer: Optional[asyncio.Task] = None
        self._deadline: Optional[float] = None
        self._finished = False
        self._cancelled = False
        self._received = 0
        self._last: Optional[GenerativeResult] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def elements_received(self) -> int:
        return self._received

    @property
    def last(self) -> Optional[GenerativeResult]:
        """Most recently delivered element."""
        return self._last

    # ------------------------------------------------------------------
    # Async iteration
    # ------------------------------------------------------------------

    def __aiter__(self) -> "GenerationStream":
        return self

    async def __anext__(self) -> GenerativeResult:
        if self._finished:
            raise StopAsyncIteration
        if self._cancel_requested():
            await self._cancel()
            raise StopAsyncIteration

        self._start()
        try:
            item = await self._next_item()
        except asyncio.CancelledError:
            # The consuming task was cancelled: stop producing, close the source.
            self._finished = True
            self._cancelled = True
            if self._producer is not None:
                self._producer.cancel()
            raise

        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        self._received += 1
        self._last = item
        if item.is_terminal:
            self._finished = True
            await self._await_producer()
        return item

    async def __aenter__(self) -> "GenerationStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop consumption and close the provider iterator."""
        if not self._finished:
            self._cancelled = True
        self._finished = True
        await self._stop_producer()

    async def collect(self) -> GenerativeResult:
        """
        Drain the stream and return its terminal element.

        Raises:
            ProviderMeshError: The error carried by a terminal error element.
            InvocationCancelledError: If the stream was cancelled before it finished.
        """
        async with self:
            async for _ in self:
                pass
        if self._last is None or not self._last.is_terminal:
            raise InvocationCancelledError(
                "Stream cancelled before its terminal element", provider_id=self._provider_id, model_id=self._model_id
            )
        return self._last.raise_for_error()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self) -> None:
        if self._producer is not None:
            return
        loop = asyncio.get_running_loop()
        if self._timeout is not None:
            self._deadline = loop.time() + self._timeout
        self._queue = asyncio.Queue(maxsize=self._buffer_size)
        self._producer = asyncio.ensure_future(self._produce())
        logger.debug(
            f"Stream started: provider={self._provider_id}, model={self._model_id}, buffer={self._buffer_size}"
        )

    def _cancel_requested(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(self._deadline - asyncio.get_running_loop().time(), 0.0)

    async def _next_item(self):
        get_task = asyncio.ensure_future(self._queue.get())
        waiters: Set[asyncio.Future] = {get_task}
        cancel_task = None
        if self._cancel_event is not None:
            cancel_task = asyncio.ensure_future(self._cancel_event.wait())
            waiters.add(cancel_task)
        try:
            done, _ = await asyncio.wait(waiters, timeout=self._remaining(), return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

        if self._cancel_requested():
            await self._cancel()
            return _END
        if get_task in done:
            return get_task.result()

        logger.warning(
            f"Stream timed out after {self._timeout}s: provider={self._provider_id}, model={self._model_id}"
        )
        await self._stop_producer()
        return GenerativeResult.from_error(
            InvocationTimeoutError(self._timeout), provider_id=self._provider_id, model_id=self._model_id
        )

    async def _produce(self) -> None:
        last_count: Optional[int] = None
        try:
            async for element in self._source:
                if element.provider_id is None or element.model_id is None:
                    element = element.model_copy(
                        update={
                            "provider_id": element.provider_id or self._provider_id,
                            "model_id": element.model_id or self._model_id,
                        }
                    )
                count = element.token_count
                if last_count is not None and count < last_count:
                    raise ProviderInvocationError(
                        f"stream token count decreased from {last_count} to {count}", code="stream_order"
                    )
                last_count = count
                await self._queue.put(element)
                if element.is_terminal:
                    return
            raise ProviderInvocationError("stream ended without a terminal element", code="stream_truncated")
        except asyncio.CancelledError:
            raise
        except ProviderMeshError as exc:
            await self._queue.put(
                GenerativeResult.from_error(exc, provider_id=self._provider_id, model_id=self._model_id)
            )
        except Exception as exc:
            logger.warning(
                f"Stream failed: provider={self._provider_id}, model={self._model_id}, error={type(exc).__name__}"
            )
            error = ProviderInvocationError(str(exc) or type(exc).__name__, code=type(exc).__name__)
            await self._queue.put(
                GenerativeResult.from_error(error, provider_id=self._provider_id, model_id=self._model_id)
            )
        finally:
            await self._close_source()

    async def _close_source(self) -> None:
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _cancel(self) -> None:
        logger.info(f"Stream cancelled: provider={self._provider_id}, model={self._model_id}")
        self._cancelled = True
        self._finished = True
        await self._stop_producer()

    async def _await_producer(self) -> None:
        if self._producer is not None and not self._producer.done():
            await self._producer

    async def _stop_producer(self) -> None:
        producer = self._producer
        if producer is None:
            await self._close_source()
            return
        if not producer.done():
            producer.cancel()
        try:
            await producer
        except asyncio.CancelledError:
            if not producer.cancelled():
                raise

    def __repr__(self) -> str:
        return (
            f"GenerationStream(provider={self._provider_id}, model={self._model_id}, "
            f"received={self._received}, finished={self._finished}, cancelled={self._cancelled})"
        )
