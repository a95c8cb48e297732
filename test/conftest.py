from __future__ import annotations

from pathlib import Path

import httpx
import pytest

# PROVIDERMESH_* overrides from test/.env must be visible before Settings is built
try:  # pragma: no cover
    from dotenv import load_dotenv

    load_dotenv(Path(__file__).resolve().parent / ".env", override=False)
except ImportError:
    pass

from providermesh.core.config import settings
from providermesh.registry.default import reset_default_registry
from providermesh.registry.registry import ProviderRegistry
from test._mock_provider import MockProvider

OFFLINE_HOSTS = frozenset({"mock", "localhost", "127.0.0.1"})


@pytest.fixture(autouse=True)
def _offline_http(monkeypatch: pytest.MonkeyPatch):
    """Refuse any outgoing request whose host is not a local or mock host."""
    real_send = httpx.AsyncClient.send

    async def guarded_send(self, request: httpx.Request, *args, **kwargs):
        if request.url.host not in OFFLINE_HOSTS:
            raise RuntimeError(f"Network access is disabled in tests: {request.url}")
        return await real_send(self, request, *args, **kwargs)

    monkeypatch.setattr(httpx.AsyncClient, "send", guarded_send)
    yield


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch: pytest.MonkeyPatch):
    """Keep tests independent from the caller's environment and from each other."""
    monkeypatch.setattr(settings, "default_timeout_seconds", None)
    monkeypatch.setattr(settings, "load_plugins_on_init", False)
    monkeypatch.setattr(settings, "cancel_ack_timeout_seconds", 0.5)
    yield
    reset_default_registry()


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider("mock")


@pytest.fixture
def registry(mock_provider: MockProvider) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register_provider("mock", lambda: mock_provider)
    return registry
