"""Request executor: one logical request, many physical attempts.

The executor sends a request, classifies the outcome, and consults the retry
policy until the request succeeds, the policy gives up, or the failure is not
retryable. Classified failures come back as values inside a RequestResult;
only an invalid RequestSpec raises, and it does so before any I/O.

Example usage:
    executor = RequestExecutor(http_client, RetryPolicy(RetryConfig(max_retries=3)))
    spec = RequestSpec(url="https://urlscan.io/api/v1/result/abc/")
    result = await executor.execute(spec)
    if result.is_success:
        data = result.value.json()
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import aiohttp

from urlscan_client.execution.classifier import (
    classify_exception,
    classify_http_response,
)
from urlscan_client.execution.failures import ClassifiedFailure, RequestResult
from urlscan_client.execution.retry_policy import RetryPolicy
from urlscan_client.utils.http_client import HTTPClientError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from urlscan_client.utils.http_client import HTTPResponse

logger = logging.getLogger(__name__)

RETRY_COUNT_HEADER = "X-Retry-Count"

_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


@dataclass(frozen=True, slots=True)
class TimeoutSpec:
    """Per-attempt timeout triple, in seconds.

    Attributes:
        total: Overall deadline for one attempt
        connect: Deadline for establishing the connection
        sock_read: Maximum wait between reads once connected
    """

    total: float = 30.0
    connect: float = 10.0
    sock_read: float = 30.0

    def __post_init__(self) -> None:
        """Validate the timeout triple."""
        if self.total <= 0 or self.connect <= 0 or self.sock_read <= 0:
            raise ValueError("timeouts must be positive")
        if self.connect > self.sock_read:
            raise ValueError(
                f"connect timeout ({self.connect}s) must be <= "
                f"socket timeout ({self.sock_read}s)"
            )
        if self.sock_read > self.total:
            raise ValueError(
                f"socket timeout ({self.sock_read}s) must be <= "
                f"total timeout ({self.total}s)"
            )

    def to_client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(
            total=self.total, connect=self.connect, sock_read=self.sock_read
        )


@dataclass(frozen=True)
class RequestSpec:
    """Immutable description of one logical request.

    Attributes:
        url: Absolute target URL
        method: HTTP method
        headers: Extra request headers
        params: Query parameters
        data: Raw request body
        json: JSON request body (mutually exclusive with data)
        timeout: Per-attempt timeout triple
        proxy: Optional proxy URL for this request
    """

    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    data: bytes | str | None = None
    json: Any = None
    timeout: TimeoutSpec = field(default_factory=TimeoutSpec)
    proxy: str | None = None

    def __post_init__(self) -> None:
        """Validate the spec and freeze its mappings."""
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValueError("url cannot be blank")
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"url must be absolute http(s): {self.url!r}")
        method = self.method.upper()
        if method not in _METHODS:
            raise ValueError(f"unsupported HTTP method: {self.method!r}")
        if self.data is not None and self.json is not None:
            raise ValueError("data and json cannot both be set")
        if not isinstance(self.timeout, TimeoutSpec):
            raise TypeError("timeout must be a TimeoutSpec")

        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


@dataclass
class RetryState:
    """Attempt bookkeeping for one execute() call.

    Attributes:
        attempts: Attempts made so far
        started_at: Monotonic timestamp when execution began
        total_delay: Seconds spent waiting between attempts
    """

    attempts: int = 0
    started_at: float = field(default_factory=time.monotonic)
    total_delay: float = 0.0

    @property
    def elapsed(self) -> float:
        """Seconds since execution began."""
        return time.monotonic() - self.started_at


@runtime_checkable
class Transport(Protocol):
    """Anything that can perform a single physical HTTP request.

    HTTPClient is the production implementation. Implementations return a
    response for every status code and raise only when no response exists.
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        data: bytes | str | None = None,
        json: Any = None,
        timeout: aiohttp.ClientTimeout | None = None,
        proxy: str | None = None,
    ) -> HTTPResponse: ...


class RequestExecutor:
    """Runs logical requests through classify, decide, wait and retry.

    Each execute() call keeps its own RetryState, so one executor can be
    shared by any number of concurrent tasks.
    """

    def __init__(
        self,
        transport: Transport,
        policy: RetryPolicy | None = None,
        *,
        slow_response_threshold: float | None = 5.0,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Performs the physical requests
            policy: Retry policy. Uses defaults if not provided.
            slow_response_threshold: Attempts slower than this many seconds
                are logged at WARNING. None disables the check.
        """
        self.transport = transport
        self.policy = policy or RetryPolicy()
        self.slow_response_threshold = slow_response_threshold

    async def execute(
        self, spec: RequestSpec, *, max_retries: int | None = None
    ) -> RequestResult[HTTPResponse]:
        """Execute a logical request.

        Args:
            spec: The request to send
            max_retries: Override for the policy's retry limit

        Returns:
            RequestResult holding the response or the last classified failure

        Raises:
            TypeError: If spec is not a RequestSpec
            ValueError: If max_retries is negative
        """
        if not isinstance(spec, RequestSpec):
            raise TypeError(f"expected RequestSpec, got {type(spec).__name__}")
        if max_retries is not None and max_retries < 0:
            raise ValueError("max_retries must be non-negative")

        state = RetryState()
        operation = f"{spec.method} {spec.url}"

        while True:
            state.attempts += 1
            response, failure = await self._attempt(spec, state.attempts)

            if failure is None:
                if state.attempts > 1:
                    logger.info(
                        "%s succeeded after %d attempts (total delay: %.2fs)",
                        operation,
                        state.attempts,
                        state.total_delay,
                    )
                return RequestResult.success(
                    response, attempts=state.attempts, elapsed=state.elapsed
                )

            decision = self.policy.should_retry(
                failure, state.attempts, state.elapsed, max_retries
            )
            if not decision.retry:
                logger.debug(
                    "%s giving up after %d attempt(s): %s (%s)",
                    operation,
                    state.attempts,
                    failure,
                    decision.reason,
                )
                return RequestResult.from_failure(
                    failure, attempts=state.attempts, elapsed=state.elapsed
                )

            logger.warning(
                "%s failed (attempt %d): %s. Retrying in %.2fs (%s)",
                operation,
                state.attempts,
                failure,
                decision.delay,
                decision.reason,
            )
            state.total_delay += decision.delay
            await asyncio.sleep(decision.delay)

    async def _attempt(
        self, spec: RequestSpec, attempt_number: int
    ) -> tuple[HTTPResponse | None, ClassifiedFailure | None]:
        """Send one physical request and classify the outcome."""
        headers = dict(spec.headers)
        if attempt_number > 1:
            headers[RETRY_COUNT_HEADER] = str(attempt_number - 1)

        started = time.monotonic()
        try:
            response = await self.transport.request(
                spec.method,
                spec.url,
                headers=headers or None,
                params=spec.params or None,
                data=spec.data,
                json=spec.json,
                timeout=spec.timeout.to_client_timeout(),
                proxy=spec.proxy,
            )
        except (
            HTTPClientError,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            OSError,
        ) as e:
            return None, classify_exception(e, spec.url)

        duration = time.monotonic() - started
        threshold = self.slow_response_threshold
        if threshold is not None and duration > threshold:
            logger.warning(
                "Slow response: %.0fms for %s %s",
                duration * 1000,
                spec.method,
                spec.url,
            )

        return response, classify_http_response(response)
