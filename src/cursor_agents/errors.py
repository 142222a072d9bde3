"""Exception hierarchy for cursor-agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class CursorAgentsError(Exception):
    """Base exception for all cursor-agents errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class InvalidArgumentError(CursorAgentsError, ValueError):
    """A caller passed an argument that violates a precondition."""


class InvalidStateError(CursorAgentsError):
    """An object was found (or restored) in a state its invariants forbid."""


class NullValueError(CursorAgentsError, ValueError):
    """A value that must be present was ``None``."""


class ConfigurationError(CursorAgentsError):
    """Configuration validation or resolution failed."""


class RemoteError(CursorAgentsError):
    """Stand-in for a deserialized error whose type cannot be rebuilt locally."""

    def __init__(self, message: str, *, remote_type: str, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.remote_type = remote_type

    def __reduce__(self):  # keyword-only state survives pickling
        return (_rebuild_remote_error, (str(self.args[0]), self.remote_type, self.hint))


def _rebuild_remote_error(
    message: str, remote_type: str, hint: str | None
) -> RemoteError:
    return RemoteError(message, remote_type=remote_type, hint=hint)


class APIError(CursorAgentsError):
    """The agents API rejected a request or could not be reached.

    ``status_code`` is ``None`` for transport failures (DNS, timeouts, resets).
    ``code`` and ``details`` mirror the API's JSON error body when one was sent.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        code: str | None = None,
        details: str | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.code = code
        self.details = details
        self.retryable = retryable


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


# --- Actionable hints ---

_HTTP_ERROR_HINTS = {
    400: "Check the request payload; the API rejected it as invalid.",
    401: "Verify CURSOR_API_KEY is valid.",
    403: "Check API key permissions for this repository.",
    404: "Agent not found; list agents to confirm the id.",
    409: "The agent is in a state that does not accept this operation.",
    429: "Rate limit exceeded; wait and retry.",
    500: "Cursor API internal error; retry later.",
    503: "Service unavailable; retry later.",
}


def get_http_error_hint(status_code: int) -> str | None:
    """Return an actionable hint for a given HTTP status code."""
    return _HTTP_ERROR_HINTS.get(status_code)


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
