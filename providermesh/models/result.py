"""Generation results.

A :class:`GenerativeResult` owns one or more :class:`Candidate` alternatives.
Each candidate finishes independently, so multi-candidate results can mix
outcomes (one ``stop``, one ``content-filter``...). Stream elements reuse the
same type: non-terminal elements carry candidates without a finish reason, and
a stream failure is delivered as a result with ``error`` set.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.errors import ErrorInfo, ProviderMeshError, error_from_info
from .enums import FinishReason
from .message import FunctionCall, Message


class TokenUsage(BaseModel):
    """Token accounting for one result.

    ``total_tokens`` always equals ``prompt_tokens + completion_tokens``; it is
    derived when omitted and rejected when inconsistent.
    """

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0, description="Tokens consumed by the prompt")
    completion_tokens: int = Field(default=0, ge=0, description="Tokens produced by the model")
    total_tokens: Optional[int] = Field(None, ge=0, description="prompt_tokens + completion_tokens")

    @model_validator(mode="after")
    def _check_total(self) -> "TokenUsage":
        expected = self.prompt_tokens + self.completion_tokens
        if self.total_tokens is None:
            object.__setattr__(self, "total_tokens", expected)
        elif self.total_tokens != expected:
            raise ValueError(
                f"total_tokens ({self.total_tokens}) must equal prompt_tokens + completion_tokens ({expected})"
            )
        return self


class Candidate(BaseModel):
    """One generated alternative.

    Attributes:
        index: Position among the result's candidates
        message: Generated message
        finish_reason: Why generation stopped; ``None`` on non-terminal stream elements
        token_count: Tokens generated for this candidate
        error: Failure details when ``finish_reason`` is ``error``
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(default=0, ge=0, description="Position among the result's candidates")
    message: Message = Field(..., description="Generated message")
    finish_reason: Optional[FinishReason] = Field(None, description="Why generation stopped")
    token_count: int = Field(default=0, ge=0, description="Tokens generated for this candidate")
    error: Optional[ErrorInfo] = Field(None, description="Failure details for errored candidates")

    @property
    def failed(self) -> bool:
        return self.finish_reason is FinishReason.error

    @property
    def text(self) -> str:
        return self.message.text

    @property
    def function_calls(self) -> List[FunctionCall]:
        return self.message.function_calls


class GenerativeResult(BaseModel):
    """Output of one invocation, or one element of a stream.

    Attributes:
        id: Result identifier
        provider_id: Provider that produced the result
        model_id: Model that produced the result
        candidates: Generated alternatives; at least one unless ``error`` is set
        usage: Token accounting
        error: Set on a stream's terminal error element
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Result identifier")
    provider_id: Optional[str] = Field(None, description="Provider that produced the result")
    model_id: Optional[str] = Field(None, description="Model that produced the result")
    candidates: List[Candidate] = Field(default_factory=list, description="Generated alternatives")
    usage: Optional[TokenUsage] = Field(None, description="Token accounting")
    error: Optional[ErrorInfo] = Field(None, description="Terminal error of a stream")

    @model_validator(mode="after")
    def _check_candidates(self) -> "GenerativeResult":
        if not self.candidates and self.error is None:
            raise ValueError("a result needs at least one candidate unless it carries an error")
        return self

    @classmethod
    def from_error(
        cls, error: ProviderMeshError, *, provider_id: Optional[str] = None, model_id: Optional[str] = None
    ) -> "GenerativeResult":
        error.bind(provider_id, model_id)
        return cls(provider_id=error.provider_id, model_id=error.model_id, error=error.to_error_info())

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def first(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def text(self) -> str:
        """Text of the first candidate."""
        return self.candidates[0].text if self.candidates else ""

    @property
    def finish_reason(self) -> Optional[FinishReason]:
        """``error`` for error elements, otherwise the first candidate's finish reason."""
        if self.error is not None:
            return FinishReason.error
        return self.candidates[0].finish_reason

    @property
    def is_terminal(self) -> bool:
        """True when the result carries an error or every candidate has finished."""
        if self.error is not None:
            return True
        return all(c.finish_reason is not None for c in self.candidates)

    @property
    def token_count(self) -> int:
        """Total tokens reported by ``usage``, falling back to the candidates' counts."""
        if self.usage is not None and self.usage.total_tokens is not None:
            return self.usage.total_tokens
        return sum(c.token_count for c in self.candidates)

    @property
    def failed_candidates(self) -> List[Candidate]:
        return [c for c in self.candidates if c.failed]

    @property
    def successful_candidates(self) -> List[Candidate]:
        return [c for c in self.candidates if not c.failed]

    @property
    def all_candidates_failed(self) -> bool:
        return bool(self.candidates) and all(c.failed for c in self.candidates)

    @property
    def requires_function_response(self) -> bool:
        """True when a candidate stopped to wait for function responses."""
        return any(c.finish_reason is FinishReason.tool_calls for c in self.candidates)

    def raise_for_error(self) -> "GenerativeResult":
        """Raise the attached error, if any; return ``self`` otherwise."""
        if self.error is not None:
            raise error_from_info(self.error)
        return self
