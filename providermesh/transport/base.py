"""Transport and authentication interfaces.

The runtime never builds network requests itself. Concrete providers translate
a :class:`GenerationRequest` into a :class:`TransportRequest`, let an
:class:`Authenticator` annotate it, and hand it to a :class:`Transport`.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class TransportRequest(BaseModel):
    """Outgoing request, mutable so authenticators can annotate it.

    Attributes:
        method: HTTP method
        url: Absolute URL
        headers: Request headers
        params: Query parameters
        json_body: JSON payload (mutually exclusive with ``content``)
        content: Raw payload
    """

    model_config = ConfigDict(frozen=False)

    method: str = Field(default="POST", description="HTTP method")
    url: str = Field(..., description="Absolute URL")
    headers: Dict[str, str] = Field(default_factory=dict, description="Request headers")
    params: Dict[str, str] = Field(default_factory=dict, description="Query parameters")
    json_body: Optional[Any] = Field(None, description="JSON payload")
    content: Optional[bytes] = Field(None, description="Raw payload")


class TransportOptions(BaseModel):
    """Per-send options.

    Attributes:
        timeout: Seconds before the transport gives up (None = transport default)
        follow_redirects: Whether redirects are followed
    """

    model_config = ConfigDict(frozen=True)

    timeout: Optional[float] = Field(None, gt=0, description="Seconds before the transport gives up")
    follow_redirects: bool = Field(default=False, description="Whether redirects are followed")


class TransportResponse(BaseModel):
    """Response returned by a transport.

    Attributes:
        status_code: HTTP status code
        headers: Response headers
        content: Raw body
    """

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(..., description="HTTP status code")
    headers: Dict[str, str] = Field(default_factory=dict, description="Response headers")
    content: bytes = Field(default=b"", description="Raw body")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json_data(self) -> Any:
        return json.loads(self.content.decode("utf-8")) if self.content else None

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@runtime_checkable
class Transport(Protocol):
    """Capability-injected request sender."""

    async def send(self, request: TransportRequest, options: Optional[TransportOptions] = None) -> TransportResponse:
        """Send ``request`` and return the complete response."""
        ...


@runtime_checkable
class Authenticator(Protocol):
    """Capability-injected request annotator (API key header, bearer token...)."""

    def authenticate(self, request: TransportRequest) -> None:
        """Mutate ``request`` in place so the provider accepts it."""
        ...
