"""Exceptions raised when a classified failure is unwrapped.

The execution layer never raises these itself; it returns failures as values.
Callers that prefer exceptions (single-call wrappers such as
``FilesApi.download_file``) get them from ``RequestResult.unwrap()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from urlscan_client.execution.failures import ClassifiedFailure


class UrlScanError(Exception):
    """Base exception for urlscan.io API errors."""

    def __init__(
        self,
        message: str,
        failure: ClassifiedFailure | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description
            failure: The classified failure this error was raised for
            url: URL of the failed request
        """
        super().__init__(message)
        self.failure = failure
        self.url = url if url is not None else getattr(failure, "url", None)


class AuthenticationError(UrlScanError):
    """Raised when the API key is invalid, missing or lacks permissions."""

    pass


class NotFoundError(UrlScanError):
    """Raised when a requested resource is not found."""

    pass


class RateLimitError(UrlScanError):
    """Raised when the API rate limit has been exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after_seconds: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after_seconds = retry_after_seconds


class ApiError(UrlScanError):
    """Raised for any other HTTP error response."""

    def __init__(self, message: str, status_code: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class TransportError(UrlScanError):
    """Raised when no HTTP response was received."""

    pass


def error_for_failure(failure: ClassifiedFailure) -> UrlScanError:
    """Map a classified failure to the exception type callers catch."""
    from urlscan_client.execution.failures import FailureKind, RateLimited

    kind = failure.kind
    if kind is FailureKind.UNAUTHORIZED:
        return AuthenticationError(failure.message, failure=failure)
    if kind is FailureKind.NOT_FOUND:
        return NotFoundError(failure.message, failure=failure)
    if isinstance(failure, RateLimited):
        return RateLimitError(
            failure.message,
            retry_after_seconds=failure.retry_after_seconds,
            failure=failure,
        )
    if kind is FailureKind.TRANSPORT:
        error = TransportError(failure.message, failure=failure)
        error.__cause__ = getattr(failure, "cause", None)
        return error
    return ApiError(failure.message, status_code=failure.status or 0, failure=failure)
