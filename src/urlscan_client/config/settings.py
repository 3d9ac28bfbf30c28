"""Client configuration.

``ClientConfig`` is the immutable configuration value passed explicitly to
every component. ``ClientSettings`` loads one from environment variables
(prefix ``URLSCAN_``) using pydantic-settings, with an optional ``.env`` file.

Example:
    export URLSCAN_API_KEY=...
    export URLSCAN_MAX_RETRIES=5

    config = get_settings().to_config()
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from urlscan_client.execution.executor import TimeoutSpec
from urlscan_client.execution.retry_policy import RetryConfig
from urlscan_client.utils.http_client import HTTPClientConfig

DEFAULT_API_HOST = "urlscan.io"
DEFAULT_BASE_URL = f"https://{DEFAULT_API_HOST}"
CLIENT_VERSION = "1.0.0"
DEFAULT_USER_AGENT = f"UrlScan-Python-Client/{CLIENT_VERSION} (aiohttp)"


class ProxyType(Enum):
    """Proxy schemes supported by the aiohttp transport."""

    HTTP = "http"
    HTTPS = "https"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Configuration for the urlscan.io client.

    All timeouts and delays are in seconds.

    Attributes:
        api_key: urlscan.io API key (required for most operations)
        base_url: Base URL for the API including scheme
        timeout: Overall deadline for one request attempt
        connect_timeout: Time allowed to establish a TCP connection
        socket_timeout: Time to wait for data between packets
        max_retries: Maximum retry attempts for transient failures
        retry_base_delay: Delay before the first retry
        retry_max_delay: Cap on computed backoff delays
        retry_jitter_factor: Random jitter as a fraction of the delay
        default_concurrency: Concurrency cap for batch operations
        follow_redirects: Whether 3xx responses are followed
        enable_logging: Raise the package logger to DEBUG
        user_agent: User-Agent header value
        slow_response_threshold: Attempts slower than this are logged
        proxy_url: Optional proxy URL (http:// or https://)
        proxy_type: Scheme of the proxy, taken from proxy_url when not given
    """

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    connect_timeout: float = 10.0
    socket_timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 60.0
    retry_jitter_factor: float = 0.1
    default_concurrency: int = 10
    follow_redirects: bool = False
    enable_logging: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    slow_response_threshold: float = 5.0
    proxy_url: str | None = None
    proxy_type: ProxyType | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.socket_timeout <= 0:
            raise ValueError("socket_timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.default_concurrency < 1:
            raise ValueError("default_concurrency must be >= 1")
        if self.connect_timeout > self.socket_timeout:
            raise ValueError(
                f"connect_timeout ({self.connect_timeout}s) must be <= "
                f"socket_timeout ({self.socket_timeout}s)"
            )
        if self.socket_timeout > self.timeout:
            raise ValueError(
                f"socket_timeout ({self.socket_timeout}s) must be <= "
                f"timeout ({self.timeout}s)"
            )
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        if self.proxy_url is not None:
            if not self.proxy_url.strip():
                raise ValueError("proxy_url cannot be blank")
            if not self.proxy_url.startswith(("http://", "https://")):
                raise ValueError("proxy_url must start with http:// or https://")
            scheme = ProxyType(self.proxy_url.split("://", 1)[0])
            if self.proxy_type is None:
                object.__setattr__(self, "proxy_type", scheme)
            elif self.proxy_type is not scheme:
                raise ValueError("proxy_url scheme does not match proxy_type")

    @property
    def timeout_spec(self) -> TimeoutSpec:
        """Per-attempt timeout triple."""
        return TimeoutSpec(
            total=self.timeout,
            connect=self.connect_timeout,
            sock_read=self.socket_timeout,
        )

    @property
    def retry_config(self) -> RetryConfig:
        """Retry policy configuration."""
        return RetryConfig(
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            jitter_factor=self.retry_jitter_factor,
        )

    @property
    def http_client_config(self) -> HTTPClientConfig:
        """Transport configuration."""
        return HTTPClientConfig(
            api_key=self.api_key,
            timeout=self.socket_timeout,
            connect_timeout=self.connect_timeout,
            total_timeout=self.timeout,
            user_agent=self.user_agent,
            follow_redirects=self.follow_redirects,
            proxy=self.proxy_url,
        )

    def url_for(self, path: str) -> str:
        """Join a path onto the base URL."""
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def with_api_key(self, api_key: str) -> ClientConfig:
        return dataclasses.replace(self, api_key=api_key)

    def with_base_url(self, base_url: str) -> ClientConfig:
        return dataclasses.replace(self, base_url=base_url)

    def with_retries(self, count: int) -> ClientConfig:
        return dataclasses.replace(self, max_retries=count)

    def with_timeout(self, timeout: float) -> ClientConfig:
        """Copy with a new overall timeout.

        Connect timeout becomes a third and socket timeout a half of it.
        """
        return dataclasses.replace(
            self,
            timeout=timeout,
            connect_timeout=timeout / 3,
            socket_timeout=timeout / 2,
        )

    def with_proxy(
        self, proxy_url: str, proxy_type: ProxyType | None = None
    ) -> ClientConfig:
        return dataclasses.replace(self, proxy_url=proxy_url, proxy_type=proxy_type)


class ClientSettings(BaseSettings):
    """Environment-backed settings for the urlscan.io client.

    The connection and retry fields can be overridden with a ``URLSCAN_`` variable,
    e.g. ``URLSCAN_API_KEY`` or ``URLSCAN_SOCKET_TIMEOUT``.
    """

    model_config = SettingsConfigDict(
        env_prefix="URLSCAN_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    connect_timeout: float = 10.0
    socket_timeout: float = 30.0
    max_retries: int = 3
    default_concurrency: int = 10
    follow_redirects: bool = False
    enable_logging: bool = False
    proxy_url: str | None = None
    proxy_type: ProxyType | None = None

    def to_config(self, **overrides: object) -> ClientConfig:
        """Build a validated ClientConfig, applying keyword overrides."""
        values = self.model_dump()
        values.update(overrides)
        return ClientConfig(**values)  # type: ignore[arg-type]


@lru_cache
def get_settings() -> ClientSettings:
    """Get cached settings instance."""
    return ClientSettings()
