"""Files API: download captured files by SHA256 hash.

urlscan.io serves each file as a password-protected ZIP archive containing a
single entry named after the hash.

Example usage:
    async with UrlScanClient(config) as client:
        archive = await client.files.download_file(file_hash)

        results = await client.files.download_files(hashes, concurrency=5)
        for file_hash, result in results.items():
            if result.is_success:
                save(file_hash, result.value)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from urlscan_client.execution.executor import RequestSpec

if TYPE_CHECKING:
    from collections.abc import Iterable

    from urlscan_client.config.settings import ClientConfig
    from urlscan_client.execution.batch import BatchRunner
    from urlscan_client.execution.executor import RequestExecutor
    from urlscan_client.execution.failures import RequestResult

logger = logging.getLogger(__name__)

DEFAULT_ZIP_PASSWORD = "urlscan!"
SHA256_HEX_LENGTH = 64


def validate_file_hash(file_hash: str) -> None:
    """Check that a file hash looks like a SHA256 hex digest.

    Raises:
        ValueError: If the hash is blank or not 64 characters long
    """
    if not file_hash or not file_hash.strip():
        raise ValueError("File hash cannot be blank")
    if len(file_hash) != SHA256_HEX_LENGTH:
        raise ValueError("SHA256 hash must be 64 characters long")


class FilesApi:
    """Wrapper for the /downloads endpoint."""

    def __init__(
        self,
        executor: RequestExecutor,
        batch_runner: BatchRunner,
        config: ClientConfig,
    ) -> None:
        self._executor = executor
        self._batch_runner = batch_runner
        self._config = config

    def _download_spec(
        self, file_hash: str, password: str, filename: str | None
    ) -> RequestSpec:
        params = {"password": password}
        if filename is not None:
            params["filename"] = filename
        return RequestSpec(
            url=self._config.url_for(f"downloads/{file_hash}"),
            params=params,
            headers={"Accept": "application/zip"},
            timeout=self._config.timeout_spec,
        )

    async def fetch_file(
        self,
        file_hash: str,
        password: str = DEFAULT_ZIP_PASSWORD,
        filename: str | None = None,
    ) -> RequestResult[bytes]:
        """Download a file, returning failures as values.

        Args:
            file_hash: SHA256 hash of the file to download
            password: Password to encrypt the ZIP archive with
            filename: Optional filename for the archive

        Returns:
            RequestResult holding the ZIP bytes or the classified failure

        Raises:
            ValueError: If the hash or password is invalid
        """
        validate_file_hash(file_hash)
        if not password or not password.strip():
            raise ValueError("Password cannot be blank")

        result = await self._executor.execute(
            self._download_spec(file_hash, password, filename)
        )
        return result.map(lambda response: response.content)

    async def download_file(
        self,
        file_hash: str,
        password: str = DEFAULT_ZIP_PASSWORD,
        filename: str | None = None,
    ) -> bytes:
        """Download a file by SHA256 hash.

        Returns:
            The encrypted ZIP archive

        Raises:
            ValueError: If the hash or password is invalid
            UrlScanError: If the download fails after retries
        """
        result = await self.fetch_file(file_hash, password, filename)
        return result.unwrap()

    async def download_files(
        self,
        file_hashes: Iterable[str],
        password: str = DEFAULT_ZIP_PASSWORD,
        filename: str | None = None,
        concurrency: int | None = None,
    ) -> dict[str, RequestResult[bytes]]:
        """Download many files with bounded concurrency.

        Every hash is validated before any download starts. One file's
        failure does not affect the others.

        Args:
            file_hashes: SHA256 hashes to download
            password: Password for the ZIP archives
            filename: Optional filename for the archives
            concurrency: Maximum concurrent downloads (config default if None)

        Returns:
            Mapping of file hash to its download result

        Raises:
            ValueError: If any hash, the password or concurrency is invalid
        """
        hashes = list(file_hashes)
        for file_hash in hashes:
            validate_file_hash(file_hash)
        if not password or not password.strip():
            raise ValueError("Password cannot be blank")

        async def download(file_hash: str) -> RequestResult[bytes]:
            return await self.fetch_file(file_hash, password, filename)

        logger.debug("Downloading %d files", len(hashes))
        return await self._batch_runner.run(
            hashes,
            download,
            concurrency=(
                self._config.default_concurrency
                if concurrency is None
                else concurrency
            ),
        )
