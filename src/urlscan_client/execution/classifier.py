"""Translate HTTP responses and transport errors into classified failures.

Everything here is a pure function of its inputs: no state, no I/O, and no
exceptions for any response the server can send.
"""

from __future__ import annotations

import asyncio
import http
from typing import TYPE_CHECKING

from urlscan_client.execution.failures import (
    BadRequest,
    ClassifiedFailure,
    NotFound,
    OtherFailure,
    RateLimited,
    ServerError,
    TransportFailure,
    Unauthorized,
)
from urlscan_client.utils.http_client import (
    HTTPTimeoutError,
    lookup_header,
    parse_retry_after,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from urlscan_client.utils.http_client import HTTPResponse


def _status_text(status: int, reason: str | None) -> str:
    if reason:
        return reason
    try:
        return http.HTTPStatus(status).phrase
    except ValueError:
        return f"HTTP {status}"


def _body_text(body: bytes | str | None, status: int, reason: str | None) -> str:
    """Decode a response body for an error message.

    Falls back to the status description when the body is missing or
    cannot be decoded.
    """
    if body is None:
        return _status_text(status, reason)
    if isinstance(body, str):
        return body
    try:
        return body.decode("utf-8")
    except (UnicodeDecodeError, AttributeError):
        return _status_text(status, reason)


def classify_response(
    status: int,
    body: bytes | str | None,
    headers: Mapping[str, str] | None,
    url: str,
    reason: str | None = None,
) -> ClassifiedFailure | None:
    """Classify an HTTP response.

    Args:
        status: HTTP status code
        body: Response body, raw or decoded
        headers: Response headers
        url: URL of the request
        reason: Status line reason phrase

    Returns:
        None when status < 400, otherwise exactly one ClassifiedFailure
    """
    if status < 400:
        return None

    if status in (401, 403):
        return Unauthorized(
            url=url,
            message=f"Invalid or missing API key for {url}",
            status_code=status,
        )

    if status == 404:
        text = _body_text(body, status, reason)
        return NotFound(url=url, message=f"Resource not found: {url} - {text}")

    if status == 429:
        retry_after = parse_retry_after(lookup_header(headers or {}, "Retry-After"))
        return RateLimited(
            url=url,
            message=f"Rate limit exceeded for {url}",
            retry_after_seconds=retry_after,
        )

    text = _body_text(body, status, reason)

    if status == 400:
        return BadRequest(url=url, message=f"Bad request to {url}: {text}")

    if 500 <= status <= 599:
        return ServerError(
            url=url,
            message=f"Server error ({status}) for {url}: {text}",
            status_code=status,
        )

    return OtherFailure(
        url=url,
        message=f"API error ({status}) for {url}: {text}",
        status_code=status,
    )


def classify_http_response(response: HTTPResponse) -> ClassifiedFailure | None:
    """Classify a transport response; see classify_response."""
    return classify_response(
        response.status,
        response.content,
        response.headers,
        response.url,
        reason=response.reason,
    )


def classify_exception(exc: BaseException, url: str) -> TransportFailure:
    """Classify a failure to obtain any HTTP response."""
    cause = getattr(exc, "cause", None) or exc
    if isinstance(exc, asyncio.CancelledError):
        message = f"Request cancelled for {url}"
    elif isinstance(exc, (HTTPTimeoutError, asyncio.TimeoutError)):
        message = f"Request timed out for {url}"
    else:
        message = f"Transport error for {url}: {exc}"
    return TransportFailure(url=url, message=message, cause=cause)
