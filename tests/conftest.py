"""Shared pytest fixtures for urlscan_client tests.

Fixtures are organized into categories:
- Response and hash factories
- Fake transport that scripts responses per URL
- Configuration and environment fixtures

Usage:
    async def test_example(fake_transport, make_response):
        fake_transport.script(url, [make_response(503), make_response(200)])
"""

from __future__ import annotations

import asyncio
import hashlib
from collections import defaultdict
from collections.abc import Callable
from typing import Any

import pytest

from urlscan_client.config.settings import ClientConfig
from urlscan_client.utils.http_client import HTTPResponse

# =============================================================================
# Factories
# =============================================================================


ZIP_BYTES = b"PK\x03\x04\x14\x00\x00\x00\x08\x00"


@pytest.fixture
def zip_bytes() -> bytes:
    """Minimal ZIP local file header."""
    return ZIP_BYTES


def build_response(
    status: int = 200,
    content: bytes = b"",
    headers: dict[str, str] | None = None,
    url: str = "https://urlscan.io/api/v1/test",
    reason: str | None = None,
) -> HTTPResponse:
    return HTTPResponse(
        status=status,
        headers=headers or {},
        content=content,
        url=url,
        reason=reason,
    )


@pytest.fixture
def make_response() -> Callable[..., HTTPResponse]:
    """Factory fixture for HTTPResponse objects."""
    return build_response


def sha256_of(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()


@pytest.fixture
def make_hash() -> Callable[[str], str]:
    """Factory fixture producing valid 64-character SHA256 hex digests."""
    return sha256_of


# =============================================================================
# Fake Transport
# =============================================================================


class FakeTransport:
    """Transport double returning scripted responses.

    Each URL gets a queue of outcomes (HTTPResponse or exception). The last
    outcome repeats once the queue is drained. URLs without a script get the
    default outcome, computed by `default` when it is callable.
    """

    def __init__(
        self,
        default: HTTPResponse | BaseException | Callable[[str], Any] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.default = default if default is not None else build_response(200)
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._scripts: dict[str, list[Any]] = {}
        self._positions: dict[str, int] = defaultdict(int)

    def script(self, url: str, outcomes: list[Any]) -> None:
        self._scripts[url] = list(outcomes)

    def calls_for(self, url: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["url"] == url]

    def _next_outcome(self, url: str) -> Any:
        outcomes = self._scripts.get(url)
        if not outcomes:
            return self.default(url) if callable(self.default) else self.default
        position = self._positions[url]
        self._positions[url] = position + 1
        return outcomes[min(position, len(outcomes) - 1)]

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Any = None,
        params: Any = None,
        data: Any = None,
        json: Any = None,
        timeout: Any = None,
        proxy: str | None = None,
    ) -> HTTPResponse:
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": dict(headers or {}),
                "params": dict(params or {}),
                "data": data,
                "json": json,
                "timeout": timeout,
                "proxy": proxy,
            }
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Always yield so concurrent callers interleave
            await asyncio.sleep(self.delay)
            outcome = self._next_outcome(url)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Fake transport answering 200 with empty content by default."""
    return FakeTransport()


@pytest.fixture
def transport_factory() -> type[FakeTransport]:
    """The FakeTransport class, for tests needing a custom default or delay."""
    return FakeTransport


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def client_config() -> ClientConfig:
    """Client configuration with fast retries for tests."""
    return ClientConfig(
        api_key="test-api-key",
        base_url="https://urlscan.io/api/v1",
        max_retries=3,
        retry_base_delay=0.001,
        retry_max_delay=0.01,
        retry_jitter_factor=0.0,
    )


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set URLSCAN_* environment variables for settings tests."""
    env_vars = {
        "URLSCAN_API_KEY": "env-api-key",
        "URLSCAN_BASE_URL": "https://pro.urlscan.io",
        "URLSCAN_TIMEOUT": "60",
        "URLSCAN_MAX_RETRIES": "5",
        "URLSCAN_DEFAULT_CONCURRENCY": "4",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars
