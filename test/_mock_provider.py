"""In-process mock provider used by unit and end-to-end tests.

The mock never touches the network: its transport sleeps for a configurable
delay and counts the connections it holds open, so tests can check that
timeouts and cancellation release them.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional

from providermesh.invocation.model import GenerativeModel
from providermesh.invocation.operations import OperationStore
from providermesh.models import (
    Candidate,
    Capability,
    Feature,
    FinishReason,
    GenerationRequest,
    GenerativeResult,
    InvocationShape,
    Message,
    ModelMetadata,
    Operation,
    OperationState,
    ProviderMetadata,
    ProviderType,
    ResolvedModelConfig,
    TokenUsage,
)
from providermesh.registry.base import Provider
from providermesh.transport.base import TransportOptions, TransportRequest, TransportResponse

ALL_SHAPES = [InvocationShape.sync, InvocationShape.streaming, InvocationShape.operation]


class SleepingTransport:
    """Transport that answers after ``delay`` seconds and tracks open connections."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.open_connections = 0
        self.max_open_connections = 0
        self.requests: List[TransportRequest] = []

    async def send(self, request: TransportRequest, options: Optional[TransportOptions] = None) -> TransportResponse:
        self.requests.append(request)
        self.open_connections += 1
        self.max_open_connections = max(self.max_open_connections, self.open_connections)
        try:
            await asyncio.sleep(self.delay)
            return TransportResponse(status_code=200, content=b'{"text": "ok"}')
        finally:
            self.open_connections -= 1


def default_models() -> List[ModelMetadata]:
    return [
        ModelMetadata(
            id="m1",
            features=[Feature.text_generation],
            capabilities=[
                Capability.choice("candidate_count", [1, 2, 4], default=1),
                Capability.range("temperature", 0.0, 2.0, default=1.0),
                Capability.flag("concurrent_invocation"),
            ],
            invocation_shapes=ALL_SHAPES,
        ),
        ModelMetadata(
            id="m2",
            features=[Feature.text_generation, Feature.embedding],
            capabilities=[Capability.unsupported("candidate_count")],
            invocation_shapes=[InvocationShape.sync],
        ),
        ModelMetadata(
            id="m-open",
            features=[Feature.image_generation],
            capabilities=[Capability.open("candidate_count", predicate=lambda v: isinstance(v, int) and v > 0)],
            invocation_shapes=[InvocationShape.operation],
        ),
    ]


class MockModel(GenerativeModel):
    """Model whose behaviour is driven by the owning :class:`MockProvider`."""

    def __init__(self, provider: "MockProvider", metadata: ModelMetadata, config: ResolvedModelConfig) -> None:
        super().__init__(provider.id, metadata, config)
        self._provider = provider
        self.last_request: Optional[GenerationRequest] = None

    def _candidates(self, request: GenerationRequest, text: str) -> List[Candidate]:
        count = int(request.config.get("candidate_count", 1) or 1)
        reasons = self._provider.finish_reasons
        return [
            Candidate(
                index=i,
                message=Message.model(f"{text} #{i}"),
                finish_reason=reasons[i] if i < len(reasons) else FinishReason.stop,
                token_count=3,
            )
            for i in range(count)
        ]

    async def _generate(self, request: GenerationRequest) -> GenerativeResult:
        self.last_request = request
        if self._provider.fail_with is not None:
            raise self._provider.fail_with
        response = await self._provider.transport.send(TransportRequest(url="http://mock/generate"))
        text = response.json_data()["text"]
        return GenerativeResult(
            candidates=self._candidates(request, text),
            usage=TokenUsage(prompt_tokens=2, completion_tokens=3),
        )

    async def _generate_stream(self, request: GenerationRequest) -> AsyncIterator[GenerativeResult]:
        self.last_request = request
        provider = self._provider
        provider.open_streams += 1
        try:
            chunks = provider.stream_chunks
            for i, chunk in enumerate(chunks):
                await asyncio.sleep(provider.stream_delay)
                last = i == len(chunks) - 1
                yield GenerativeResult(
                    candidates=[
                        Candidate(
                            message=Message.model(chunk),
                            finish_reason=FinishReason.stop if last and not provider.truncate_stream else None,
                            token_count=provider.token_counts[i] if provider.token_counts else i + 1,
                        )
                    ]
                )
                provider.produced += 1
        finally:
            provider.open_streams -= 1

    async def _start_operation(self, request: GenerationRequest) -> Operation:
        self.last_request = request
        return await self._provider.operations.create(self.id, metadata={"request_id": request.id})

    async def _fetch_operation(self, operation_id: str) -> Operation:
        if self._provider.poll_delay:
            await asyncio.sleep(self._provider.poll_delay)
        if self._provider.fail_polls:
            raise ConnectionError("backend unreachable")
        return await self._provider.operations.get(operation_id)

    async def _cancel_operation(self, operation_id: str) -> None:
        self._provider.cancel_requests.append(operation_id)
        if self._provider.cancel_delay:
            await asyncio.sleep(self._provider.cancel_delay)
        await self._provider.operations.cancel(operation_id)


class MockProvider(Provider):
    """Configurable provider with three models: ``m1``, ``m2`` and ``m-open``."""

    def __init__(
        self,
        provider_id: str = "mock",
        *,
        available: bool = True,
        aliases: Optional[List[str]] = None,
        models: Optional[List[ModelMetadata]] = None,
        delay: float = 0.0,
        default_config: Optional[dict] = None,
    ) -> None:
        super().__init__(
            ProviderMetadata(
                id=provider_id,
                type=ProviderType.cloud,
                aliases=aliases or [],
                default_config=default_config or {},
            ),
            models=models if models is not None else default_models(),
            availability=lambda: self.available,
        )
        self.available = available
        self.transport = SleepingTransport(delay)
        self.operations = OperationStore(provider_id)
        self.fail_with: Optional[Exception] = None
        self.finish_reasons: List[FinishReason] = []
        self.stream_chunks: List[str] = ["Once", " upon", " a time"]
        self.token_counts: List[int] = []
        self.stream_delay = 0.0
        self.truncate_stream = False
        self.produced = 0
        self.open_streams = 0
        self.fail_polls = False
        self.poll_delay = 0.0
        self.cancel_delay = 0.0
        self.cancel_requests: List[str] = []
        self.created_models: List[MockModel] = []

    def create_model(self, metadata: ModelMetadata, config: ResolvedModelConfig) -> MockModel:
        model = MockModel(self, metadata, config)
        self.created_models.append(model)
        return model

    async def complete_operation(self, operation_id: str, text: str = "done") -> Operation:
        """Drive an operation through ``processing`` to ``succeeded`` with one candidate."""
        await self.operations.advance(operation_id, OperationState.processing)
        result = GenerativeResult(
            provider_id=self.id,
            candidates=[Candidate(message=Message.model(text), finish_reason=FinishReason.stop, token_count=1)],
        )
        return await self.operations.advance(operation_id, OperationState.succeeded, result=result)
