"""Unit tests for GenerationStream ordering, backpressure, errors and cancellation."""

import asyncio
from typing import List, Optional

import pytest

from providermesh.core.errors import InvocationCancelledError, InvocationTimeoutError, ProviderInvocationError
from providermesh.invocation.streaming import GenerationStream
from providermesh.models.enums import FinishReason
from providermesh.models.message import Message
from providermesh.models.result import Candidate, GenerativeResult


def _element(text: str, tokens: int, final: bool = False) -> GenerativeResult:
    return GenerativeResult(
        candidates=[
            Candidate(
                message=Message.model(text),
                finish_reason=FinishReason.stop if final else None,
                token_count=tokens,
            )
        ]
    )


class Source:
    """Async generator wrapper recording how far the provider got."""

    def __init__(
        self,
        count: int = 3,
        *,
        delay: float = 0.0,
        tokens: Optional[List[int]] = None,
        final: bool = True,
        fail_at: Optional[int] = None,
    ) -> None:
        self.count = count
        self.delay = delay
        self.tokens = tokens
        self.final = final
        self.fail_at = fail_at
        self.yielded = 0
        self.closed = False

    async def run(self):
        try:
            for i in range(self.count):
                await asyncio.sleep(self.delay)
                if self.fail_at == i:
                    raise ConnectionResetError("peer went away")
                tokens = self.tokens[i] if self.tokens else i + 1
                self.yielded += 1
                yield _element(f"chunk{i}", tokens, final=self.final and i == self.count - 1)
        finally:
            self.closed = True


def _stream(source: Source, **kwargs) -> GenerationStream:
    return GenerationStream(source.run(), provider_id="mock", model_id="m1", **kwargs)


class TestOrdering:
    @pytest.mark.asyncio
    async def test_elements_in_order_and_terminal_last(self):
        source = Source(3)
        elements = [e async for e in _stream(source)]
        assert [e.text for e in elements] == ["chunk0", "chunk1", "chunk2"]
        assert [e.is_terminal for e in elements] == [False, False, True]
        assert all(e.provider_id == "mock" and e.model_id == "m1" for e in elements)
        assert source.closed

    @pytest.mark.asyncio
    async def test_token_counts_never_decrease(self):
        elements = [e async for e in _stream(Source(4, tokens=[1, 3, 3, 7]))]
        counts = [e.token_count for e in elements]
        assert counts == sorted(counts)

    @pytest.mark.asyncio
    async def test_decreasing_count_becomes_error_element(self):
        elements = [e async for e in _stream(Source(3, tokens=[5, 2, 9]))]
        assert len(elements) == 2
        assert elements[-1].error.code == "stream_order"
        assert elements[-1].is_terminal

    @pytest.mark.asyncio
    async def test_nothing_after_terminal(self):
        stream = _stream(Source(2))
        assert len([e async for e in stream]) == 2
        assert stream.finished
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()


class TestErrors:
    @pytest.mark.asyncio
    async def test_truncated_stream(self):
        elements = [e async for e in _stream(Source(2, final=False))]
        assert elements[-1].error.code == "stream_truncated"

    @pytest.mark.asyncio
    async def test_provider_failure_is_a_single_error_element(self):
        source = Source(5, fail_at=2)
        elements = [e async for e in _stream(source)]
        assert len(elements) == 3
        assert elements[-1].error.type == "ProviderInvocationError"
        assert elements[-1].error.code == "ConnectionResetError"
        assert elements[-1].error.provider_id == "mock"
        assert source.closed

    @pytest.mark.asyncio
    async def test_collect_raises_the_error(self):
        with pytest.raises(ProviderInvocationError):
            await _stream(Source(5, fail_at=1)).collect()

    @pytest.mark.asyncio
    async def test_collect_returns_terminal(self):
        result = await _stream(Source(3)).collect()
        assert result.text == "chunk2"


class TestBackpressure:
    @pytest.mark.asyncio
    async def test_producer_runs_ahead_by_at_most_the_buffer(self):
        source = Source(100)
        stream = _stream(source, buffer_size=2)
        async with stream:
            await stream.__anext__()
            await asyncio.sleep(0.05)
            assert source.yielded <= 2 + 2
        assert source.closed
        assert stream.cancelled


class TestCancellation:
    @pytest.mark.asyncio
    async def test_aclose_stops_source(self):
        source = Source(10, delay=0.01)
        stream = _stream(source)
        await stream.__anext__()
        await stream.aclose()
        assert source.closed
        assert stream.cancelled
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_break_inside_context_manager(self):
        source = Source(10, delay=0.01)
        async with _stream(source) as stream:
            async for _ in stream:
                break
        assert source.closed

    @pytest.mark.asyncio
    async def test_cancel_event_stops_delivery(self):
        source = Source(10, delay=0.01)
        event = asyncio.Event()
        stream = _stream(source, cancel_event=event)
        received = []
        async for element in stream:
            received.append(element)
            event.set()
        assert len(received) == 1
        assert stream.cancelled
        assert source.closed

    @pytest.mark.asyncio
    async def test_cancel_event_while_waiting(self):
        source = Source(3, delay=10)
        event = asyncio.Event()
        stream = _stream(source, cancel_event=event)
        asyncio.get_running_loop().call_later(0.02, event.set)
        assert [e async for e in stream] == []
        assert source.closed

    @pytest.mark.asyncio
    async def test_collect_after_cancel(self):
        event = asyncio.Event()
        event.set()
        with pytest.raises(InvocationCancelledError):
            await _stream(Source(3), cancel_event=event).collect()

    @pytest.mark.asyncio
    async def test_consumer_task_cancellation(self):
        source = Source(3, delay=10)
        stream = _stream(source)
        task = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)
        await stream.aclose()
        assert source.closed
        assert stream.cancelled


class TestTimeout:
    @pytest.mark.asyncio
    async def test_timeout_yields_error_element(self):
        source = Source(3, delay=10)
        elements = [e async for e in _stream(source, timeout=0.02)]
        assert len(elements) == 1
        assert elements[0].error.type == "InvocationTimeoutError"
        assert source.closed

    @pytest.mark.asyncio
    async def test_collect_raises_timeout(self):
        with pytest.raises(InvocationTimeoutError):
            await _stream(Source(3, delay=10), timeout=0.02).collect()
