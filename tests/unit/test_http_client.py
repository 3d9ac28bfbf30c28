"""Tests for the HTTP transport."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from urlscan_client.utils.http_client import (
    API_KEY_HEADER,
    ContentType,
    HTTPClient,
    HTTPClientConfig,
    HTTPClientError,
    HTTPConnectionError,
    HTTPResponse,
    HTTPTimeoutError,
    lookup_header,
    parse_retry_after,
    sanitize_headers,
)


def _mock_response(
    status: int = 200,
    content: bytes = b"{}",
    headers: dict[str, str] | None = None,
    url: str = "https://urlscan.io/api/v1/test",
) -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.headers = headers or {}
    mock_response.url = url
    mock_response.reason = "OK"
    mock_response.read = AsyncMock(return_value=content)
    return mock_response


class TestHTTPClientConfig:
    """Tests for HTTPClientConfig dataclass."""

    def test_default_values(self) -> None:
        """Test that default configuration values are set correctly."""
        config = HTTPClientConfig()

        assert config.api_key == ""
        assert config.timeout == 30.0
        assert config.connect_timeout == 10.0
        assert config.total_timeout == 30.0
        assert config.max_connections == 100
        assert config.max_connections_per_host == 10
        assert config.follow_redirects is False
        assert config.verify_ssl is True
        assert config.proxy is None

    def test_config_is_immutable(self) -> None:
        """Test that HTTPClientConfig is frozen (immutable)."""
        config = HTTPClientConfig()

        with pytest.raises(AttributeError):
            config.timeout = 999.0  # type: ignore[misc]

    def test_default_headers_include_api_key(self) -> None:
        """Test that the API key is sent when configured."""
        config = HTTPClientConfig(api_key="secret", user_agent="Agent/1.0")
        headers = config.default_headers

        assert headers[API_KEY_HEADER] == "secret"
        assert headers["User-Agent"] == "Agent/1.0"
        assert headers["Accept"] == "application/json"

    def test_default_headers_without_api_key(self) -> None:
        """Test that an empty API key sends no API-Key header."""
        assert API_KEY_HEADER not in HTTPClientConfig().default_headers


class TestHeaderHelpers:
    """Tests for header lookup, sanitizing and Retry-After parsing."""

    def test_sanitize_hides_api_key(self) -> None:
        """Test that the API key never reaches logs."""
        sanitized = sanitize_headers({"api-key": "secret", "Accept": "*/*"})

        assert sanitized == {"api-key": "***", "Accept": "*/*"}

    def test_lookup_header_is_case_insensitive(self) -> None:
        """Test header lookup ignores case."""
        headers = {"retry-after": "30"}

        assert lookup_header(headers, "Retry-After") == "30"
        assert lookup_header(headers, "X-Missing") is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("30", 30),
            (" 0 ", 0),
            ("300", 300),
            (None, None),
            ("", None),
            ("-5", None),
            ("1.5", None),
            ("Wed, 21 Oct 2015 07:28:00 GMT", None),
        ],
    )
    def test_parse_retry_after(self, value: str | None, expected: int | None) -> None:
        """Test Retry-After parsing accepts only non-negative integers."""
        assert parse_retry_after(value) == expected


class TestHTTPResponse:
    """Tests for HTTPResponse dataclass."""

    def test_json_parsing(self) -> None:
        """Test parsing response content as JSON."""
        response = HTTPResponse(
            status=200,
            headers={},
            content=b'{"uuid": "abc", "visibility": "public"}',
            url="https://urlscan.io/api/v1/result/abc/",
        )

        assert response.json() == {"uuid": "abc", "visibility": "public"}

    def test_json_parsing_invalid(self) -> None:
        """Test that invalid JSON raises ValueError."""
        response = HTTPResponse(
            status=200, headers={}, content=b"not json", url="https://urlscan.io"
        )

        with pytest.raises(ValueError, match="Invalid JSON"):
            response.json()

    def test_is_success(self) -> None:
        """Test is_success is True below 400."""
        for status in [200, 204, 301, 399]:
            response = HTTPResponse(
                status=status, headers={}, content=b"", url="https://urlscan.io"
            )
            assert response.is_success, f"Expected True for status {status}"

        for status in [400, 404, 429, 500]:
            response = HTTPResponse(
                status=status, headers={}, content=b"", url="https://urlscan.io"
            )
            assert not response.is_success, f"Expected False for status {status}"

    def test_retry_after_any_case(self) -> None:
        """Test retry_after reads the header regardless of case."""
        response = HTTPResponse(
            status=429,
            headers={"retry-after": "120"},
            content=b"",
            url="https://urlscan.io",
        )

        assert response.retry_after == 120

    def test_detect_content_type(self) -> None:
        """Test content type detection."""
        detect = HTTPResponse._detect_content_type

        assert detect("application/json; charset=utf-8") == ContentType.JSON
        assert detect("application/zip") == ContentType.ZIP
        assert detect("text/html") == ContentType.HTML
        assert detect("text/plain") == ContentType.TEXT
        assert detect("application/pdf") == ContentType.BINARY


class TestHTTPClientErrors:
    """Tests for HTTP client exception classes."""

    def test_http_client_error_with_context(self) -> None:
        """Test HTTPClientError keeps url and cause."""
        cause = OSError("Connection refused")
        error = HTTPClientError("Failed", url="https://urlscan.io", cause=cause)

        assert str(error) == "Failed"
        assert error.url == "https://urlscan.io"
        assert error.cause is cause

    def test_subclasses(self) -> None:
        """Test connection and timeout errors are HTTPClientErrors."""
        assert isinstance(HTTPConnectionError("x"), HTTPClientError)
        assert isinstance(HTTPTimeoutError("x"), HTTPClientError)


@pytest.mark.asyncio
class TestHTTPClient:
    """Tests for HTTPClient class."""

    async def test_client_context_manager(self) -> None:
        """Test that client works as async context manager."""
        async with HTTPClient() as client:
            assert client.is_open

        assert not client.is_open

    async def test_client_close_is_idempotent(self) -> None:
        """Test that calling close multiple times is safe."""
        client = HTTPClient()
        await client._create_session()
        assert client.is_open

        await client.close()
        await client.close()
        assert not client.is_open

    async def test_request_returns_error_statuses(self) -> None:
        """Test that non-2xx statuses come back as responses, not exceptions."""
        mock_response = _mock_response(status=503, content=b"unavailable")

        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_response

            async with HTTPClient() as client:
                response = await client.request(
                    "GET", "https://urlscan.io/api/v1/test"
                )

        assert response.status == 503
        assert response.content == b"unavailable"

    async def test_request_passes_options(self) -> None:
        """Test headers, params, timeout and redirect policy reach aiohttp."""
        timeout = aiohttp.ClientTimeout(total=5, connect=1, sock_read=2)

        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = _mock_response()

            async with HTTPClient() as client:
                await client.request(
                    "GET",
                    "https://urlscan.io/api/v1/search/",
                    headers={"X-Retry-Count": "1"},
                    params={"q": "domain:example.com"},
                    timeout=timeout,
                )

        call_kwargs = mock_request.call_args[1]
        assert call_kwargs["headers"] == {"X-Retry-Count": "1"}
        assert call_kwargs["params"] == {"q": "domain:example.com"}
        assert call_kwargs["timeout"] is timeout
        assert call_kwargs["allow_redirects"] is False

    async def test_post_request_with_json(self) -> None:
        """Test POST request with JSON body."""
        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = _mock_response(
                status=200, content=b'{"uuid": "abc"}'
            )

            async with HTTPClient() as client:
                response = await client.post(
                    "https://urlscan.io/api/v1/scan/",
                    json={"url": "https://example.com"},
                )

        assert response.json() == {"uuid": "abc"}
        assert mock_request.call_args[0][0] == "POST"
        assert mock_request.call_args[1]["json"] == {"url": "https://example.com"}

    async def test_configured_proxy_is_used(self) -> None:
        """Test the configured proxy applies when none is passed."""
        config = HTTPClientConfig(proxy="http://proxy.local:8080")

        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = _mock_response()

            async with HTTPClient(config) as client:
                await client.get("https://urlscan.io/api/v1/test")

        assert mock_request.call_args[1]["proxy"] == "http://proxy.local:8080"

    async def test_connection_error_handling(self) -> None:
        """Test that connection errors are wrapped."""
        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.side_effect = (
                aiohttp.ClientConnectorError(
                    connection_key=MagicMock(), os_error=OSError("Connection refused")
                )
            )

            async with HTTPClient() as client:
                with pytest.raises(HTTPConnectionError) as exc_info:
                    await client.get("https://urlscan.io/api/v1/test")

        assert exc_info.value.url == "https://urlscan.io/api/v1/test"
        assert isinstance(exc_info.value.cause, aiohttp.ClientConnectorError)

    async def test_timeout_error_handling(self) -> None:
        """Test that timeouts are wrapped."""
        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.side_effect = asyncio.TimeoutError()

            async with HTTPClient() as client:
                with pytest.raises(HTTPTimeoutError):
                    await client.get("https://urlscan.io/api/v1/test")

    async def test_generic_client_error_handling(self) -> None:
        """Test that other aiohttp errors are wrapped."""
        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.side_effect = aiohttp.ClientError(
                "Generic error"
            )

            async with HTTPClient() as client:
                with pytest.raises(HTTPClientError, match="Generic error"):
                    await client.get("https://urlscan.io/api/v1/test")

    async def test_unreadable_error_body_keeps_status(self) -> None:
        """Test a body read failure on an error status still yields the status."""
        mock_response = _mock_response(status=404)
        mock_response.read = AsyncMock(
            side_effect=aiohttp.ClientPayloadError("truncated")
        )

        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_response

            async with HTTPClient() as client:
                response = await client.get("https://urlscan.io/api/v1/test")

        assert response.status == 404
        assert response.content == b""

    async def test_unreadable_success_body_raises(self) -> None:
        """Test a body read failure on a success status is a transport error."""
        mock_response = _mock_response(status=200)
        mock_response.read = AsyncMock(
            side_effect=aiohttp.ClientPayloadError("truncated")
        )

        with patch.object(aiohttp.ClientSession, "request") as mock_request:
            mock_request.return_value.__aenter__.return_value = mock_response

            async with HTTPClient() as client:
                with pytest.raises(HTTPClientError, match="truncated"):
                    await client.get("https://urlscan.io/api/v1/test")
