"""Async HTTP transport with connection pooling.

This module provides the transport used by the request executor. It wraps an
aiohttp session with a pooled connector, default urlscan.io headers and
per-request timeout triples. It performs exactly one physical request per
call: retries and status classification live in ``urlscan_client.execution``.

Example usage:
    async with HTTPClient(HTTPClientConfig(api_key="...")) as client:
        response = await client.get("https://urlscan.io/api/v1/quotas/")
        data = response.json()
"""

from __future__ import annotations

import asyncio
import json as jsonlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

API_KEY_HEADER = "API-Key"
SANITIZED_HEADERS: frozenset[str] = frozenset({API_KEY_HEADER.lower()})


class ContentType(Enum):
    """Content types for HTTP responses."""

    JSON = "application/json"
    HTML = "text/html"
    TEXT = "text/plain"
    ZIP = "application/zip"
    BINARY = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class HTTPClientConfig:
    """Configuration for the HTTP transport.

    Attributes:
        api_key: urlscan.io API key sent with every request (may be empty)
        timeout: Socket read timeout in seconds
        connect_timeout: Connection timeout in seconds
        total_timeout: Total operation timeout in seconds
        user_agent: User-Agent header value
        max_connections: Maximum number of connections in the pool
        max_connections_per_host: Maximum connections per host
        follow_redirects: Whether 3xx responses are followed
        verify_ssl: Whether to verify SSL certificates
        proxy: Optional proxy URL applied to every request
    """

    api_key: str = ""
    timeout: float = 30.0
    connect_timeout: float = 10.0
    total_timeout: float = 30.0
    user_agent: str = "UrlScan-Python-Client/1.0.0"
    max_connections: int = 100
    max_connections_per_host: int = 10
    follow_redirects: bool = False
    verify_ssl: bool = True
    proxy: str | None = None

    @property
    def default_headers(self) -> dict[str, str]:
        """Get default headers for all requests."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of headers safe for logging."""
    return {
        name: "***" if name.lower() in SANITIZED_HEADERS else value
        for name, value in headers.items()
    }


@dataclass
class HTTPResponse:
    """Wrapper for HTTP response data.

    Attributes:
        status: HTTP status code
        headers: Response headers
        content: Raw response content as bytes
        url: Final URL after redirects
        reason: Status line reason phrase, if the server sent one
        content_type: Detected content type
    """

    status: int
    headers: dict[str, str]
    content: bytes
    url: str
    reason: str | None = None
    content_type: ContentType = ContentType.BINARY

    @classmethod
    async def from_aiohttp_response(
        cls, response: aiohttp.ClientResponse
    ) -> HTTPResponse:
        """Create HTTPResponse from aiohttp response.

        A failed body read on an error status leaves the content empty so the
        status can still be classified. On other statuses the error propagates.

        Args:
            response: The aiohttp ClientResponse object

        Returns:
            HTTPResponse with all data extracted
        """
        try:
            content = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if response.status < 400:
                raise
            logger.debug(
                "Could not read body of %d response from %s: %s",
                response.status,
                response.url,
                e,
            )
            content = b""
        content_type = cls._detect_content_type(
            response.headers.get("Content-Type", "")
        )

        return cls(
            status=response.status,
            headers=dict(response.headers),
            content=content,
            url=str(response.url),
            reason=getattr(response, "reason", None),
            content_type=content_type,
        )

    @staticmethod
    def _detect_content_type(content_type_header: str) -> ContentType:
        """Detect content type from header value."""
        header_lower = content_type_header.lower()
        if "application/json" in header_lower:
            return ContentType.JSON
        if "application/zip" in header_lower:
            return ContentType.ZIP
        if "text/html" in header_lower:
            return ContentType.HTML
        if "text/plain" in header_lower:
            return ContentType.TEXT
        return ContentType.BINARY

    def json(self) -> Any:
        """Parse response content as JSON.

        Raises:
            ValueError: If content is not valid JSON
        """
        try:
            return jsonlib.loads(self.content.decode("utf-8"))
        except (jsonlib.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid JSON response: {e}") from e

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return lookup_header(self.headers, name)

    @property
    def is_success(self) -> bool:
        """Check if response indicates success (status < 400)."""
        return self.status < 400

    @property
    def retry_after(self) -> int | None:
        """Get Retry-After header value as whole seconds.

        Returns:
            Seconds to wait before retry, or None if absent or not an integer
        """
        return parse_retry_after(self.header("Retry-After"))


def lookup_header(headers: Mapping[str, str], name: str) -> str | None:
    """Find a header value regardless of the name's case."""
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After value expressed as integer seconds.

    HTTP-date values, negative numbers and anything non-numeric yield None.
    """
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    if seconds < 0:
        return None
    return seconds


class HTTPClientError(Exception):
    """Base exception for transport errors (no usable HTTP response)."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.cause = cause


class HTTPConnectionError(HTTPClientError):
    """Raised when connection to server fails."""

    pass


class HTTPTimeoutError(HTTPClientError):
    """Raised when request times out."""

    pass


class HTTPClient:
    """Async HTTP client with connection pooling.

    Should be used as an async context manager to ensure the session is
    closed. The connection pool is safe to share between concurrent tasks.

    Example:
        async with HTTPClient() as client:
            response = await client.get("https://urlscan.io/api/v1/quotas/")
            if response.is_success:
                data = response.json()
    """

    def __init__(self, config: HTTPClientConfig | None = None) -> None:
        """Initialize the HTTP client.

        Args:
            config: Optional configuration. Uses defaults if not provided.
        """
        self.config = config or HTTPClientConfig()
        self._session: aiohttp.ClientSession | None = None
        self._connector: aiohttp.TCPConnector | None = None

    async def __aenter__(self) -> HTTPClient:
        """Enter async context and create session."""
        await self._create_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context and cleanup resources."""
        await self.close()

    async def _create_session(self) -> None:
        """Create the aiohttp session with connection pooling."""
        if self._session is not None:
            return

        self._connector = aiohttp.TCPConnector(
            limit=self.config.max_connections,
            limit_per_host=self.config.max_connections_per_host,
            ssl=self.config.verify_ssl,
        )

        timeout = aiohttp.ClientTimeout(
            total=self.config.total_timeout,
            connect=self.config.connect_timeout,
            sock_read=self.config.timeout,
        )

        self._session = aiohttp.ClientSession(
            connector=self._connector,
            timeout=timeout,
            headers=self.config.default_headers,
        )

        logger.debug(
            "Created HTTP session with pool size %d", self.config.max_connections
        )

    async def close(self) -> None:
        """Close the session and release resources."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            self._connector = None
            logger.debug("Closed HTTP session")

    @property
    def is_open(self) -> bool:
        """Check if the session is open."""
        return self._session is not None and not self._session.closed

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists and return it."""
        if self._session is None:
            await self._create_session()
        if self._session is None:
            raise RuntimeError("HTTP session not initialized")
        return self._session

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> HTTPResponse:
        """Perform a single GET request."""
        return await self.request(
            "GET", url, headers=headers, params=params, timeout=timeout
        )

    async def post(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        data: bytes | str | None = None,
        json: Any = None,
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> HTTPResponse:
        """Perform a single POST request."""
        return await self.request(
            "POST",
            url,
            headers=headers,
            params=params,
            data=data,
            json=json,
            timeout=timeout,
        )

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
    ) -> HTTPResponse:
        """Perform one physical HTTP request.

        Any status code is returned as a response; only failures to obtain a
        response raise.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: The URL to request
            headers: Additional headers to send
            params: Query parameters to append to URL
            data: Raw data to send in body
            json: JSON data to send in body
            timeout: Timeout triple for this request
            proxy: Proxy URL overriding the configured one

        Returns:
            HTTPResponse with response data

        Raises:
            HTTPConnectionError: If connection fails
            HTTPTimeoutError: If request times out
            HTTPClientError: For other transport errors
        """
        session = await self._ensure_session()

        kwargs: dict[str, Any] = {"allow_redirects": self.config.follow_redirects}
        if headers:
            kwargs["headers"] = dict(headers)
        if params:
            kwargs["params"] = dict(params)
        if data is not None:
            kwargs["data"] = data
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout
        proxy = proxy or self.config.proxy
        if proxy:
            kwargs["proxy"] = proxy

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "HTTP %s %s headers=%s",
                method,
                url,
                sanitize_headers({**self.config.default_headers, **(headers or {})}),
            )

        try:
            async with session.request(method, url, **kwargs) as response:
                http_response = await HTTPResponse.from_aiohttp_response(response)
                logger.debug("HTTP %s %s -> %d", method, url, http_response.status)
                return http_response

        except aiohttp.ClientConnectorError as e:
            logger.warning("Connection error for %s: %s", url, e)
            raise HTTPConnectionError(
                f"Failed to connect to {url}", url=url, cause=e
            ) from e

        except (aiohttp.ServerTimeoutError, asyncio.TimeoutError) as e:
            logger.warning("Timeout for %s: %s", url, e)
            raise HTTPTimeoutError(
                f"Request timed out for {url}", url=url, cause=e
            ) from e

        except aiohttp.ClientError as e:
            logger.warning("HTTP error for %s: %s", url, e)
            raise HTTPClientError(f"HTTP error for {url}: {e}", url=url, cause=e) from e
