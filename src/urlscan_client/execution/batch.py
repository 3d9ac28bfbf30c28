"""Bounded-concurrency batch runner.

Runs one worker per item under a concurrency cap and returns one
RequestResult per item, keyed by the item itself. A failing item never
cancels its siblings: every item runs to completion before the batch
returns, unless the caller imposes a deadline.

Example usage:
    async def download(file_hash: str) -> RequestResult[bytes]:
        return await files.fetch_file(file_hash)

    results = await run_batch(hashes, download, concurrency=10)
    missing = [h for h, r in results.items() if r.is_failure]
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from urlscan_client.exceptions import UrlScanError
from urlscan_client.execution.failures import RequestResult, TransportFailure

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

DEFAULT_CONCURRENCY = 10


class BatchProgressCallback(Protocol):
    """Protocol for batch progress callbacks.

    Called once per item as it finishes, in completion order.
    """

    def __call__(
        self,
        *,
        key: Any,
        current: int,
        total: int,
        result: RequestResult[Any],
    ) -> None:
        """Called with progress updates.

        Args:
            key: The item that just finished
            current: Number of items finished so far (1-indexed)
            total: Number of items in the batch
            result: The item's outcome
        """
        ...


@dataclass
class BatchProgress:
    """Tracks progress of one batch run.

    Attributes:
        total_items: Items in the batch
        completed_items: Items that finished successfully
        failed_items: Items that finished with a failure
        started_at: When the batch started
        errors: Failure messages in completion order
    """

    total_items: int
    completed_items: int = 0
    failed_items: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    errors: list[str] = field(default_factory=list)

    @property
    def processed_items(self) -> int:
        """Total number of finished items."""
        return self.completed_items + self.failed_items

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage (0-100)."""
        if self.processed_items == 0:
            return 0.0
        return (self.completed_items / self.processed_items) * 100

    @property
    def is_complete(self) -> bool:
        """Check if every item has finished."""
        return self.processed_items >= self.total_items

    def record(self, result: RequestResult[Any]) -> None:
        if result.failure is None:
            self.completed_items += 1
        else:
            self.failed_items += 1
            self.errors.append(result.failure.message)


def validate_concurrency(concurrency: int) -> int:
    """Check a concurrency limit.

    Raises:
        TypeError: If concurrency is not an int
        ValueError: If concurrency is less than 1
    """
    if isinstance(concurrency, bool) or not isinstance(concurrency, int):
        raise TypeError(
            f"concurrency must be an int, got {type(concurrency).__name__}"
        )
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    return concurrency


class BatchRunner:
    """Runs independent workers under a concurrency cap.

    The runner holds no per-batch state, so one instance can serve several
    concurrent batches; each run() gets its own semaphore.
    """

    def __init__(
        self,
        default_concurrency: int = DEFAULT_CONCURRENCY,
        *,
        progress_callback: BatchProgressCallback | Callable[..., None] | None = None,
    ) -> None:
        """Initialize the batch runner.

        Args:
            default_concurrency: Cap used when run() is not given one
            progress_callback: Optional callback invoked as items finish
        """
        self.default_concurrency = validate_concurrency(default_concurrency)
        self._progress_callback = progress_callback

    async def run(
        self,
        items: Iterable[K],
        worker: Callable[[K], Awaitable[RequestResult[T]]],
        *,
        concurrency: int | None = None,
        deadline: float | None = None,
    ) -> dict[K, RequestResult[T]]:
        """Run worker once per item with at most `concurrency` active.

        Args:
            items: Item keys; duplicates are run and the last one in input
                order determines the key's entry
            worker: Async callable producing the outcome for one item
            concurrency: Maximum workers active at once
            deadline: Optional seconds after which unfinished items are
                cancelled and reported as transport failures

        Returns:
            Mapping of each item key to its outcome

        Raises:
            TypeError: If items is not a collection of hashable keys, or
                concurrency is not an int
            ValueError: If concurrency < 1 or deadline is not positive
        """
        limit = validate_concurrency(
            self.default_concurrency if concurrency is None else concurrency
        )
        if isinstance(items, (str, bytes)):
            raise TypeError("items must be a collection of keys, not a string")
        keys = list(items)
        for key in keys:
            hash(key)
        if deadline is not None and deadline <= 0:
            raise ValueError("deadline must be positive")

        progress = BatchProgress(total_items=len(keys))
        if not keys:
            return {}

        logger.debug("Starting batch of %d items (concurrency=%d)", len(keys), limit)

        semaphore = asyncio.Semaphore(limit)
        outcomes: list[RequestResult[T] | None] = [None] * len(keys)

        async def run_one(index: int, key: K) -> None:
            async with semaphore:
                result = await self._call_worker(worker, key)
            outcomes[index] = result
            progress.record(result)
            self._notify_progress(key, progress, result)

        tasks = [
            asyncio.create_task(run_one(index, key)) for index, key in enumerate(keys)
        ]

        try:
            _, pending = await asyncio.wait(tasks, timeout=deadline)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if pending:
            logger.warning(
                "Batch deadline of %.2fs expired with %d items unfinished",
                deadline,
                len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        results: dict[K, RequestResult[T]] = {}
        for index, key in enumerate(keys):
            outcome = outcomes[index]
            if outcome is None:
                outcome = RequestResult.from_failure(
                    TransportFailure(
                        url="",
                        message=f"Cancelled at batch deadline: {key!r}",
                        cause=TimeoutError(f"batch deadline of {deadline}s exceeded"),
                    )
                )
                progress.record(outcome)
            results[key] = outcome

        logger.info(
            "Batch complete. Success: %d, Failed: %d (%.1f%%)",
            progress.completed_items,
            progress.failed_items,
            progress.success_rate,
        )
        return results

    async def _call_worker(
        self,
        worker: Callable[[K], Awaitable[RequestResult[T]]],
        key: K,
    ) -> RequestResult[T]:
        """Run one worker, turning anything it raises into a failure value."""
        try:
            result = await worker(key)
        except UrlScanError as e:
            if e.failure is not None:
                return RequestResult.from_failure(e.failure)
            return RequestResult.from_failure(
                TransportFailure(url=e.url or "", message=str(e), cause=e)
            )
        except Exception as e:
            logger.exception("Worker raised for batch item %r", key)
            return RequestResult.from_failure(
                TransportFailure(
                    url="", message=f"Worker failed for {key!r}: {e}", cause=e
                )
            )

        if not isinstance(result, RequestResult):
            return RequestResult.success(result)
        return result

    def _notify_progress(
        self, key: Any, progress: BatchProgress, result: RequestResult[Any]
    ) -> None:
        if self._progress_callback is None:
            return
        try:
            self._progress_callback(
                key=key,
                current=progress.processed_items,
                total=progress.total_items,
                result=result,
            )
        except Exception:
            logger.exception("Progress callback failed for batch item %r", key)


async def run_batch(
    items: Iterable[K],
    worker: Callable[[K], Awaitable[RequestResult[T]]],
    concurrency: int = DEFAULT_CONCURRENCY,
    *,
    deadline: float | None = None,
) -> dict[K, RequestResult[T]]:
    """Run worker once per item under a concurrency cap.

    See BatchRunner.run for the full contract.
    """
    return await BatchRunner(concurrency).run(items, worker, deadline=deadline)
