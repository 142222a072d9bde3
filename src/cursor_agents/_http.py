"""HTTP helpers shared by the agents clients.

Turns ``httpx`` responses and transport exceptions into ``APIError`` so that
outcomes carry one error family with structured metadata.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from cursor_agents.errors import APIError, RateLimitError, get_http_error_hint
from cursor_agents.models import ErrorResponse

# Status codes a caller may reasonably retry.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

USER_AGENT = "cursor-agents-python"


def _error_body(response: httpx.Response) -> ErrorResponse | None:
    try:
        return ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return None


def error_from_response(response: httpx.Response) -> APIError:
    """Build an ``APIError`` (``RateLimitError`` for 429) from a non-2xx response."""
    status = response.status_code
    body = _error_body(response)
    code = body.error.code if body else None
    details = body.error.details if body else None
    reason = (body.error.message if body else None) or response.reason_phrase or "error"

    message = f"{response.request.method} {response.request.url.path} failed: HTTP {status} {reason}"
    if code:
        message += f" [{code}]"

    cls = RateLimitError if status == 429 else APIError
    return cls(
        message,
        hint=get_http_error_hint(status),
        status_code=status,
        code=code,
        details=details,
        retryable=status in RETRYABLE_STATUS_CODES,
    )


def error_from_transport(exc: httpx.RequestError) -> APIError:
    """Build an ``APIError`` for a request that never produced a response."""
    try:
        url = str(exc.request.url)
    except RuntimeError:  # raised by httpx when no request is attached
        url = "<unknown>"
    retryable = isinstance(exc, (httpx.TimeoutException, httpx.NetworkError))
    return APIError(
        f"Request to {url} failed: {type(exc).__name__}: {exc}",
        hint="Check network connectivity and the configured base_url.",
        retryable=retryable,
    )


def decode_json(response: httpx.Response) -> Any:
    """Return the decoded JSON body, raising ``APIError`` when it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise APIError(
            f"{response.request.method} {response.request.url.path} returned a non-JSON body",
            status_code=response.status_code,
        ) from exc
