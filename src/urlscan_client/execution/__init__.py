"""Request-execution components.

This package provides the layer every API wrapper calls into:
- ClassifiedFailure variants and RequestResult
- Error classifier for HTTP responses and transport errors
- RetryPolicy with exponential backoff and Retry-After support
- RequestExecutor running the classify/decide/wait loop
- BatchRunner for bounded-concurrency batches
"""

from urlscan_client.execution.batch import (
    BatchProgress,
    BatchRunner,
    run_batch,
)
from urlscan_client.execution.classifier import (
    classify_exception,
    classify_http_response,
    classify_response,
)
from urlscan_client.execution.executor import (
    RequestExecutor,
    RequestSpec,
    RetryState,
    TimeoutSpec,
    Transport,
)
from urlscan_client.execution.failures import (
    BadRequest,
    ClassifiedFailure,
    FailureKind,
    NotFound,
    OtherFailure,
    RateLimited,
    RequestResult,
    ServerError,
    TransportFailure,
    Unauthorized,
)
from urlscan_client.execution.retry_policy import (
    RETRYABLE_STATUS_CODES,
    RetryConfig,
    RetryDecision,
    RetryPolicy,
)

__all__ = [
    "BadRequest",
    "BatchProgress",
    "BatchRunner",
    "ClassifiedFailure",
    "FailureKind",
    "NotFound",
    "OtherFailure",
    "RETRYABLE_STATUS_CODES",
    "RateLimited",
    "RequestExecutor",
    "RequestResult",
    "RequestSpec",
    "RetryConfig",
    "RetryDecision",
    "RetryPolicy",
    "RetryState",
    "ServerError",
    "TimeoutSpec",
    "Transport",
    "TransportFailure",
    "Unauthorized",
    "classify_exception",
    "classify_http_response",
    "classify_response",
    "run_batch",
]
