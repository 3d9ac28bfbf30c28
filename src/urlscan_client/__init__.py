"""Async client for the urlscan.io API.

The request-execution layer classifies HTTP failures into a stable taxonomy,
retries transient ones with backoff that honors Retry-After, and runs
bounded-concurrency batches with per-item failure isolation.
"""

from urlscan_client.client import UrlScanClient
from urlscan_client.config.settings import ClientConfig, ClientSettings, ProxyType
from urlscan_client.exceptions import (
    ApiError,
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    TransportError,
    UrlScanError,
)
from urlscan_client.execution.failures import FailureKind, RequestResult

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ClientConfig",
    "ClientSettings",
    "FailureKind",
    "NotFoundError",
    "ProxyType",
    "RateLimitError",
    "RequestResult",
    "TransportError",
    "UrlScanClient",
    "UrlScanError",
]
