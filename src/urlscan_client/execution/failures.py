"""Classified failures and the request result value.

Every request made through the execution layer ends in exactly one of two
states: a payload, or a ``ClassifiedFailure`` describing why there is no
payload. Failures are plain immutable values rather than exceptions so a
batch of requests can hold many of them side by side.

Example usage:
    result = await executor.execute(spec)
    if result.is_success:
        data = result.value.json()
    elif result.failure.kind is FailureKind.NOT_FOUND:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from urlscan_client.exceptions import UrlScanError

T = TypeVar("T")
U = TypeVar("U")


class FailureKind(Enum):
    """Stable tags for the failure taxonomy."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    OTHER = "other"
    TRANSPORT = "transport"


@dataclass(frozen=True, slots=True, kw_only=True)
class ClassifiedFailure:
    """Base type for all classified failures.

    Attributes:
        url: URL of the request that failed
        message: Human-readable description, always mentions the URL
    """

    url: str
    message: str

    kind: FailureKind = field(init=False, default=FailureKind.OTHER)

    @property
    def status(self) -> int | None:
        """HTTP status code, or None when no response was received."""
        return None

    def to_exception(self) -> UrlScanError:
        """Build the exception raised when this failure is unwrapped."""
        from urlscan_client.exceptions import error_for_failure

        return error_for_failure(self)

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True, kw_only=True)
class Unauthorized(ClassifiedFailure):
    """401 or 403: the API key is invalid, missing or lacks permission."""

    status_code: int = 401
    kind: FailureKind = field(init=False, default=FailureKind.UNAUTHORIZED)

    @property
    def status(self) -> int | None:
        return self.status_code


@dataclass(frozen=True, slots=True, kw_only=True)
class NotFound(ClassifiedFailure):
    """404: the requested resource does not exist."""

    kind: FailureKind = field(init=False, default=FailureKind.NOT_FOUND)

    @property
    def status(self) -> int | None:
        return 404


@dataclass(frozen=True, slots=True, kw_only=True)
class RateLimited(ClassifiedFailure):
    """429: too many requests.

    Attributes:
        retry_after_seconds: Server-supplied wait hint, None when absent
    """

    retry_after_seconds: int | None = None
    kind: FailureKind = field(init=False, default=FailureKind.RATE_LIMITED)

    @property
    def status(self) -> int | None:
        return 429


@dataclass(frozen=True, slots=True, kw_only=True)
class BadRequest(ClassifiedFailure):
    """400: the server rejected the request as malformed."""

    kind: FailureKind = field(init=False, default=FailureKind.BAD_REQUEST)

    @property
    def status(self) -> int | None:
        return 400


@dataclass(frozen=True, slots=True, kw_only=True)
class ServerError(ClassifiedFailure):
    """Any 5xx response."""

    status_code: int
    kind: FailureKind = field(init=False, default=FailureKind.SERVER_ERROR)

    @property
    def status(self) -> int | None:
        return self.status_code


@dataclass(frozen=True, slots=True, kw_only=True)
class OtherFailure(ClassifiedFailure):
    """Any other status >= 400."""

    status_code: int
    kind: FailureKind = field(init=False, default=FailureKind.OTHER)

    @property
    def status(self) -> int | None:
        return self.status_code


@dataclass(frozen=True, slots=True, kw_only=True)
class TransportFailure(ClassifiedFailure):
    """No HTTP response: connection refused, DNS, timeout or cancellation.

    A batch item cut off by the deadline or whose worker raised has no request
    URL. Its url is empty and its message names the item key.

    Attributes:
        cause: The underlying exception
    """

    cause: BaseException | None = None
    kind: FailureKind = field(init=False, default=FailureKind.TRANSPORT)


@dataclass(frozen=True, slots=True)
class RequestResult(Generic[T]):
    """Outcome of one logical request.

    Exactly one of ``value`` and ``failure`` is meaningful: a result with a
    failure is a failed result even if ``value`` is set.

    Attributes:
        value: The payload if the request succeeded
        failure: The classified failure if it did not
        attempts: Number of physical attempts made (1 = no retries)
        elapsed: Wall-clock seconds spent, including backoff
    """

    value: T | None = None
    failure: ClassifiedFailure | None = None
    attempts: int = 1
    elapsed: float = 0.0

    @classmethod
    def success(
        cls, value: T, *, attempts: int = 1, elapsed: float = 0.0
    ) -> RequestResult[T]:
        return cls(value=value, attempts=attempts, elapsed=elapsed)

    @classmethod
    def from_failure(
        cls, failure: ClassifiedFailure, *, attempts: int = 1, elapsed: float = 0.0
    ) -> RequestResult[T]:
        return cls(failure=failure, attempts=attempts, elapsed=elapsed)

    @property
    def is_success(self) -> bool:
        """Check if the request produced a payload."""
        return self.failure is None

    @property
    def is_failure(self) -> bool:
        """Check if the request ended in a classified failure."""
        return self.failure is not None

    def map(self, fn: Callable[[T], U]) -> RequestResult[U]:
        """Transform the payload of a successful result.

        Failed results are passed through with the same failure.
        """
        if self.failure is not None:
            return RequestResult(
                failure=self.failure, attempts=self.attempts, elapsed=self.elapsed
            )
        return RequestResult(
            value=fn(self.value),  # type: ignore[arg-type]
            attempts=self.attempts,
            elapsed=self.elapsed,
        )

    def unwrap(self) -> T:
        """Return the payload or raise the failure as a UrlScanError.

        Raises:
            UrlScanError: The subclass matching the failure kind
        """
        if self.failure is not None:
            raise self.failure.to_exception()
        return self.value  # type: ignore[return-value]
