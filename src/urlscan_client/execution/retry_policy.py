"""Retry policy with exponential backoff for failed requests.

The policy decides, after each failed attempt, whether the request should be
sent again and how long to wait first. It never sleeps itself: the request
executor owns the wait, which keeps the policy a pure function that can be
tested without an event loop.

The delay between retries follows this formula:
    delay = min(max_delay, base_delay * exponential_base ** (attempt - 1) + jitter)

unless the failure carries a server-supplied Retry-After hint, which is used
as-is.

Example usage:
    policy = RetryPolicy(RetryConfig(max_retries=3, base_delay=1.0))
    decision = policy.should_retry(failure, attempt_number=1, elapsed=0.2)
    if decision.retry:
        await asyncio.sleep(decision.delay)
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from urlscan_client.execution.failures import (
    ClassifiedFailure,
    FailureKind,
    RateLimited,
)

# 429 plus every 5xx. 502/503/504 are the gateway codes most worth retrying,
# and they are covered by the 5xx range.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, *range(500, 600)})

# Never retried, whatever retryable_status_codes says.
NON_RETRYABLE_KINDS: frozenset[FailureKind] = frozenset(
    {FailureKind.UNAUTHORIZED, FailureKind.NOT_FOUND, FailureKind.BAD_REQUEST}
)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Delay in seconds before the first retry (default: 1.0)
        max_delay: Maximum computed delay between retries in seconds (default: 60.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)
        jitter_factor: Random jitter as fraction of delay (default: 0.1)
        max_elapsed: Optional overall budget in seconds for one logical request
        retryable_status_codes: HTTP status codes that trigger retry
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter_factor: float = 0.1
    max_elapsed: float | None = None
    retryable_status_codes: frozenset[int] = field(
        default_factory=lambda: RETRYABLE_STATUS_CODES
    )

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.exponential_base <= 1:
            raise ValueError("exponential_base must be > 1")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")
        if self.max_elapsed is not None and self.max_elapsed <= 0:
            raise ValueError("max_elapsed must be positive")


@dataclass(frozen=True, slots=True)
class RetryDecision:
    """What to do after a failed attempt.

    Attributes:
        retry: Whether another attempt should be made
        delay: Seconds to wait before that attempt (0.0 when not retrying)
        reason: Short description of why, for logging
    """

    retry: bool
    delay: float = 0.0
    reason: str = ""

    @classmethod
    def stop(cls, reason: str) -> RetryDecision:
        return cls(retry=False, delay=0.0, reason=reason)


class RetryPolicy:
    """Decides whether and when a failed request is retried.

    Retried: transport failures, and any failure whose status is in
    ``retryable_status_codes``. Unauthorized, NotFound and BadRequest are
    never retried.
    """

    def __init__(self, config: RetryConfig | None = None) -> None:
        """Initialize the retry policy.

        Args:
            config: Retry configuration. Uses defaults if not provided.
        """
        self.config = config or RetryConfig()

    def is_retryable(self, failure: ClassifiedFailure) -> bool:
        """Check if a failure kind is transient."""
        if failure.kind in NON_RETRYABLE_KINDS:
            return False
        if failure.kind is FailureKind.TRANSPORT:
            return True
        status = failure.status
        return status is not None and status in self.config.retryable_status_codes

    def calculate_delay(
        self, attempt_number: int, retry_after: float | None = None
    ) -> float:
        """Calculate delay before the next attempt.

        Args:
            attempt_number: The attempt that just failed (1-indexed)
            retry_after: Server-specified delay from the Retry-After header

        Returns:
            Delay in seconds before next attempt
        """
        if retry_after is not None:
            return float(retry_after)

        delay = self.config.base_delay * (
            self.config.exponential_base ** (attempt_number - 1)
        )

        # Jitter keeps concurrent callers from retrying in lockstep
        jitter = delay * self.config.jitter_factor * random.random()  # noqa: S311
        delay += jitter

        return min(delay, self.config.max_delay)

    def should_retry(
        self,
        failure: ClassifiedFailure,
        attempt_number: int,
        elapsed: float,
        max_retries: int | None = None,
    ) -> RetryDecision:
        """Decide what to do after a failed attempt.

        Args:
            failure: Classification of the failed attempt
            attempt_number: The attempt that just failed (1-indexed)
            elapsed: Seconds spent on this logical request so far
            max_retries: Override for the configured retry limit

        Returns:
            RetryDecision with the delay to wait if retrying
        """
        limit = self.config.max_retries if max_retries is None else max_retries
        if limit < 0:
            raise ValueError("max_retries must be non-negative")

        if not self.is_retryable(failure):
            return RetryDecision.stop(f"{failure.kind.value} is not retryable")

        if attempt_number > limit:
            return RetryDecision.stop(f"retry limit {limit} reached")

        retry_after = (
            failure.retry_after_seconds if isinstance(failure, RateLimited) else None
        )
        delay = self.calculate_delay(attempt_number, retry_after)

        max_elapsed = self.config.max_elapsed
        if max_elapsed is not None and elapsed + delay > max_elapsed:
            return RetryDecision.stop(f"elapsed budget {max_elapsed:.2f}s exhausted")

        reason = "retry-after" if retry_after is not None else "backoff"
        return RetryDecision(retry=True, delay=delay, reason=reason)
