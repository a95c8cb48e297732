from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..core.errors import InvocationTimeoutError, ProviderInvocationError
from .base import Authenticator, TransportOptions, TransportRequest, TransportResponse


class HttpxTransport:
    """
    :class:`Transport` backed by ``httpx.AsyncClient``.

    Responsibilities:
    - apply the optional authenticator to every request
    - send it with per-call timeout / redirect options
    - map httpx failures to runtime errors (timeouts, connection failures)

    Non-2xx responses are returned as-is; interpreting them is the concrete
    provider's job. Connections are released when the call is cancelled, and
    :meth:`aclose` closes the pool when the transport owns its client.
    """

    def __init__(
        self,
        *,
        provider_id: Optional[str] = None,
        authenticator: Optional[Authenticator] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._provider_id = provider_id
        self._authenticator = authenticator
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def send(self, request: TransportRequest, options: Optional[TransportOptions] = None) -> TransportResponse:
        options = options or TransportOptions()
        if self._authenticator is not None:
            self._authenticator.authenticate(request)

        kwargs = {
            "headers": request.headers,
            "params": request.params or None,
            "follow_redirects": options.follow_redirects,
        }
        if options.timeout is not None:
            kwargs["timeout"] = options.timeout
        if request.json_body is not None:
            kwargs["json"] = request.json_body
        elif request.content is not None:
            kwargs["content"] = request.content

        try:
            self._logger.debug("HttpxTransport.send: %s %s", request.method, request.url)
            r = await self._client.request(request.method, request.url, **kwargs)
        except httpx.TimeoutException as e:
            raise InvocationTimeoutError(
                options.timeout if options.timeout is not None else self._client.timeout.read or 0.0,
                provider_id=self._provider_id,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderInvocationError(
                f"Transport failure: {type(e).__name__}: {e}",
                provider_id=self._provider_id,
                code=type(e).__name__,
                details={"url": request.url},
            ) from e
        self._logger.debug("HttpxTransport.send: %s %s -> %d", request.method, request.url, r.status_code)
        return TransportResponse(status_code=r.status_code, headers=dict(r.headers), content=r.content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
