"""The request a concrete model receives for one invocation."""

from __future__ import annotations

import uuid
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .config import ResolvedModelConfig
from .enums import Feature, InvocationShape
from .message import Message


class GenerationRequest(BaseModel):
    """Fully validated input handed to a provider hook.

    Attributes:
        id: Request identifier, useful for idempotency keys and log correlation
        feature: Feature being invoked
        shape: Invocation shape the caller chose
        messages: Normalized prompt, at least one message
        config: Resolved model config merged with any per-call overrides
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Request identifier")
    feature: Feature = Field(..., description="Feature being invoked")
    shape: InvocationShape = Field(..., description="Invocation shape")
    messages: List[Message] = Field(..., min_length=1, description="Normalized prompt")
    config: ResolvedModelConfig = Field(default_factory=ResolvedModelConfig, description="Effective configuration")
