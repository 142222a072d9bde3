"""Structural (de)serialization of outcomes.

Outcomes travel as a small JSON envelope validated by pydantic:

    {"status": "success", "value": 42, "error": null}
    {"status": "failure", "value": null,
     "error": {"type": "builtins.KeyError", "message": "'id'", "args": ["id"]}}

Loading re-validates the two-variant invariant and raises
``InvalidStateError`` on any violation, at load time rather than on first use.

Errors are rebuilt from their qualified type name. Built-in exceptions and
types passed to ``register_error_type`` are reconstructed with their original
args and JSON-safe attributes; anything else becomes a ``RemoteError`` that
keeps the original type name and message.
"""

from __future__ import annotations

import builtins
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_core import PydanticSerializationError

from cursor_agents import errors
from cursor_agents.errors import InvalidArgumentError, InvalidStateError, RemoteError
from cursor_agents.outcome import Failure, Outcome, Success

log = logging.getLogger(__name__)

_JSON_SCALARS = (str, int, float, bool, type(None))

_error_types: dict[str, type[BaseException]] = {}


def _qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _is_private_attribute(name: str) -> bool:
    return name.startswith("_") or name == "args"


def register_error_type(cls: type[BaseException]) -> type[BaseException]:
    """Allow *cls* to be rebuilt by name when loading envelopes.

    Usable as a class decorator. Only registered types (plus the built-in
    exceptions) are ever instantiated from serialized data.
    """
    if not (isinstance(cls, type) and issubclass(cls, BaseException)):
        raise InvalidArgumentError(f"Not an exception type: {cls!r}")
    _error_types[_qualified_name(cls)] = cls
    return cls


for _cls in (
    errors.CursorAgentsError,
    errors.InvalidArgumentError,
    errors.InvalidStateError,
    errors.NullValueError,
    errors.ConfigurationError,
    errors.APIError,
    errors.RateLimitError,
):
    register_error_type(_cls)


class ErrorPayload(BaseModel):
    """Serialized form of an exception."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str = Field(min_length=1)
    message: str
    args: list[Any] = Field(default_factory=list)
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes")
    @classmethod
    def check_attribute_names(cls, v: dict[str, Any]) -> dict[str, Any]:
        for name in v:
            if _is_private_attribute(name):
                raise ValueError(f"attribute {name!r} cannot be restored")
        return v


class OutcomeEnvelope(BaseModel):
    """Wire envelope for an ``Outcome``; enforces exactly one active variant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: Literal["success", "failure"]
    value: Any = None
    error: ErrorPayload | None = None

    @model_validator(mode="after")
    def check_variant(self) -> OutcomeEnvelope:
        if self.status == "success" and self.error is not None:
            raise ValueError("success envelope must not carry an error")
        if self.status == "failure":
            if self.error is None:
                raise ValueError("failure envelope requires an error")
            if self.value is not None:
                raise ValueError("failure envelope must not carry a value")
        return self


# --- Dump ---


def _json_safe(value: Any) -> bool:
    if isinstance(value, _JSON_SCALARS):
        return True
    if isinstance(value, (list, tuple)):
        return all(_json_safe(v) for v in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and _json_safe(v) for k, v in value.items())
    return False


def _dump_error(error: BaseException) -> ErrorPayload:
    args = list(error.args) if _json_safe(list(error.args)) else [str(error)]
    attributes: dict[str, Any] = {}
    for name, value in getattr(error, "__dict__", {}).items():
        if _is_private_attribute(name) or not _json_safe(value):
            continue
        attributes[name] = value
    if isinstance(error, RemoteError):
        type_name = error.remote_type
        attributes.pop("remote_type", None)
    else:
        type_name = _qualified_name(type(error))
    return ErrorPayload(type=type_name, message=str(error), args=args, attributes=attributes)


def to_envelope(outcome: Outcome[Any, BaseException]) -> OutcomeEnvelope:
    if isinstance(outcome, Success):
        return OutcomeEnvelope(status="success", value=outcome.value)
    if isinstance(outcome, Failure):
        return OutcomeEnvelope(status="failure", error=_dump_error(outcome.error))
    raise InvalidArgumentError(f"Expected an Outcome, got {type(outcome).__name__}")


def to_dict(outcome: Outcome[Any, BaseException]) -> dict[str, Any]:
    """Return the JSON-ready envelope of *outcome* as a plain dict.

    Raises:
        InvalidArgumentError: If the success value is not JSON-serializable.
    """
    envelope = to_envelope(outcome)
    try:
        return envelope.model_dump(mode="json")
    except PydanticSerializationError as exc:
        raise _unserializable(outcome, exc) from exc


def dumps(outcome: Outcome[Any, BaseException]) -> str:
    """Serialize *outcome* to a JSON string."""
    envelope = to_envelope(outcome)
    try:
        return envelope.model_dump_json()
    except PydanticSerializationError as exc:
        raise _unserializable(outcome, exc) from exc


def _unserializable(
    outcome: Outcome[Any, BaseException], exc: PydanticSerializationError
) -> InvalidArgumentError:
    value_type = type(outcome.get_or_none()).__name__
    return InvalidArgumentError(
        f"Cannot serialize Success value of type {value_type}: {exc}",
        hint="Use JSON-compatible values or pydantic models, or pickle the outcome.",
    )


# --- Load ---


def _resolve_error_type(type_name: str) -> type[BaseException] | None:
    registered = _error_types.get(type_name)
    if registered is not None:
        return registered
    module, _, name = type_name.rpartition(".")
    if module == "builtins":
        candidate = getattr(builtins, name, None)
        if isinstance(candidate, type) and issubclass(candidate, BaseException):
            return candidate
    return None


def _load_error(payload: ErrorPayload) -> BaseException:
    cls = _resolve_error_type(payload.type)
    if cls is None:
        log.debug("Unknown error type %s; loading as RemoteError", payload.type)
        return RemoteError(payload.message, remote_type=payload.type)

    try:
        error = cls(*payload.args)
    except Exception:
        log.debug("Could not rebuild %s from args; loading as RemoteError", payload.type)
        return RemoteError(payload.message, remote_type=payload.type)
    for name, value in payload.attributes.items():
        try:
            setattr(error, name, value)
        except AttributeError:
            log.debug("Skipping read-only attribute %s on %s", name, payload.type)
        except (TypeError, ValueError) as exc:
            raise InvalidStateError(
                f"Corrupt Outcome envelope: cannot restore {payload.type}.{name}: {exc}",
                hint=f"error.attributes.{name}: invalid value",
            ) from exc
    return error


def from_envelope(envelope: OutcomeEnvelope) -> Outcome[Any, BaseException]:
    if envelope.status == "success":
        return Success(envelope.value)
    if envelope.error is None:  # unreachable after validation
        raise InvalidStateError("failure envelope requires an error")
    return Failure(_load_error(envelope.error))


def from_dict(data: Any) -> Outcome[Any, BaseException]:
    """Rebuild an outcome from a dict produced by ``to_dict``.

    Raises:
        InvalidStateError: If *data* is not a valid envelope.
    """
    try:
        envelope = OutcomeEnvelope.model_validate(data)
    except ValidationError as exc:
        raise InvalidStateError(
            f"Corrupt Outcome envelope: {exc.error_count()} validation error(s)",
            hint=_first_error(exc),
        ) from exc
    return from_envelope(envelope)


def loads(text: str | bytes) -> Outcome[Any, BaseException]:
    """Rebuild an outcome from a JSON string produced by ``dumps``.

    Raises:
        InvalidStateError: If *text* is not valid JSON or not a valid envelope.
    """
    try:
        envelope = OutcomeEnvelope.model_validate_json(text)
    except ValidationError as exc:
        raise InvalidStateError(
            f"Corrupt Outcome envelope: {exc.error_count()} validation error(s)",
            hint=_first_error(exc),
        ) from exc
    return from_envelope(envelope)


def _first_error(exc: ValidationError) -> str | None:
    details = exc.errors()
    if not details:
        return None
    first = details[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "envelope"
    return f"{loc}: {first.get('msg', 'invalid')}"


__all__ = [
    "ErrorPayload",
    "OutcomeEnvelope",
    "dumps",
    "from_dict",
    "loads",
    "register_error_type",
    "to_dict",
]
