"""Main client for the urlscan.io API.

Composes the request-execution components: an aiohttp transport, a request
executor with the configured retry policy, and a bounded batch runner. API
wrappers are created lazily and share these components.

Example usage:
    async with UrlScanClient(ClientConfig(api_key="...")) as client:
        archive = await client.files.download_file(file_hash)

    # Or from URLSCAN_* environment variables
    async with UrlScanClient.from_environment() as client:
        ...
"""

from __future__ import annotations

import logging
from typing import Any

from urlscan_client.api.files import FilesApi
from urlscan_client.config.settings import ClientConfig, get_settings
from urlscan_client.execution.batch import BatchRunner
from urlscan_client.execution.executor import RequestExecutor, Transport
from urlscan_client.execution.retry_policy import RetryPolicy
from urlscan_client.utils.http_client import HTTPClient

logger = logging.getLogger(__name__)


class UrlScanClient:
    """Entry point holding configuration and shared request machinery.

    Attributes:
        config: The immutable client configuration
        executor: Executes single logical requests with retry
        batch_runner: Runs bounded-concurrency batches
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: Transport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration. Uses defaults if not provided.
            transport: Optional custom transport. An HTTPClient built from
                the configuration is used (and owned) otherwise.
        """
        self.config = config or ClientConfig()
        if self.config.enable_logging:
            logging.getLogger("urlscan_client").setLevel(logging.DEBUG)

        self._owns_transport = transport is None
        self._transport: Transport = transport or HTTPClient(
            self.config.http_client_config
        )
        self.executor = RequestExecutor(
            self._transport,
            RetryPolicy(self.config.retry_config),
            slow_response_threshold=self.config.slow_response_threshold,
        )
        self.batch_runner = BatchRunner(self.config.default_concurrency)
        self._files: FilesApi | None = None

        logger.debug(
            "Initialized client for %s with max_retries=%d, concurrency=%d",
            self.config.base_url,
            self.config.max_retries,
            self.config.default_concurrency,
        )

    @classmethod
    def from_environment(cls, **overrides: Any) -> UrlScanClient:
        """Create a client configured from URLSCAN_* environment variables."""
        return cls(get_settings().to_config(**overrides))

    @property
    def files(self) -> FilesApi:
        """Files API wrapper."""
        if self._files is None:
            self._files = FilesApi(self.executor, self.batch_runner, self.config)
        return self._files

    async def __aenter__(self) -> UrlScanClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the transport if this client created it."""
        if self._owns_transport and isinstance(self._transport, HTTPClient):
            await self._transport.close()
