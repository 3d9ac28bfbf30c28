"""Utility functions and helpers."""

from urlscan_client.utils.http_client import (
    ContentType,
    HTTPClient,
    HTTPClientConfig,
    HTTPClientError,
    HTTPConnectionError,
    HTTPResponse,
    HTTPTimeoutError,
)

__all__ = [
    "ContentType",
    "HTTPClient",
    "HTTPClientConfig",
    "HTTPClientError",
    "HTTPConnectionError",
    "HTTPResponse",
    "HTTPTimeoutError",
]
