"""Transport and authentication boundary used by concrete providers."""

from .auth import ApiKeyHeaderAuthenticator, BearerTokenAuthenticator
from .base import Authenticator, Transport, TransportOptions, TransportRequest, TransportResponse
from .httpx_transport import HttpxTransport

__all__ = [
    "ApiKeyHeaderAuthenticator",
    "Authenticator",
    "BearerTokenAuthenticator",
    "HttpxTransport",
    "Transport",
    "TransportOptions",
    "TransportRequest",
    "TransportResponse",
]
