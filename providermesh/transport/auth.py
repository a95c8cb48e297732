"""Authenticators for API-key style providers.

Each authenticator takes either an explicit secret or a list of environment
variable names (first non-empty wins, matching how vendors document their
official variables). Secrets are read at authentication time, never logged.
"""

from __future__ import annotations

import os
from typing import List, Optional, Sequence, Union

from ..core.errors import ProviderUnavailableError
from .base import TransportRequest


def _read_secret(value: Optional[str], env_vars: List[str]) -> Optional[str]:
    if value:
        return value
    for name in env_vars:
        secret = os.environ.get(name, "").strip()
        if secret:
            return secret
    return None


class _SecretAuthenticator:
    def __init__(
        self,
        *,
        provider_id: str,
        value: Optional[str] = None,
        env_vars: Union[str, Sequence[str]] = (),
    ) -> None:
        self._provider_id = provider_id
        self._value = value
        self._env_vars = [env_vars] if isinstance(env_vars, str) else list(env_vars)

    def _secret(self) -> str:
        secret = _read_secret(self._value, self._env_vars)
        if secret is None:
            raise ProviderUnavailableError(self._provider_id)
        return secret

    def has_secret(self) -> bool:
        """Usable as an availability predicate: ``availability=auth.has_secret``."""
        return _read_secret(self._value, self._env_vars) is not None


class ApiKeyHeaderAuthenticator(_SecretAuthenticator):
    """Puts the API key in a header (``x-api-key``, ``x-goog-api-key``...)."""

    def __init__(
        self,
        *,
        provider_id: str,
        header: str = "x-api-key",
        value: Optional[str] = None,
        env_vars: Union[str, Sequence[str]] = (),
    ) -> None:
        super().__init__(provider_id=provider_id, value=value, env_vars=env_vars)
        self._header = header

    def authenticate(self, request: TransportRequest) -> None:
        request.headers[self._header] = self._secret()


class BearerTokenAuthenticator(_SecretAuthenticator):
    """Puts the token in ``Authorization: Bearer <token>``."""

    def authenticate(self, request: TransportRequest) -> None:
        request.headers["Authorization"] = f"Bearer {self._secret()}"
