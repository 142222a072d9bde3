"""Outcome: explicit success/failure values for fallible operations.

An ``Outcome`` is exactly one of two frozen variants, ``Success(value)`` or
``Failure(error)``. Client calls return outcomes instead of raising, so
failures become a predictable part of the data flow and are handled where
the caller decides (typically with ``fold`` at the program boundary).

Catching breadth is a deliberate two-tier choice:

- ``map``, ``flat_map``, ``recover`` and ``combine`` contain *ordinary*
  errors (``Exception`` subclasses other than ``MemoryError``) and let
  catastrophic ones propagate.
- ``map_catching``, ``flat_map_catching``, ``recover_catching`` and
  ``run_catching`` contain every ``BaseException``, including
  ``KeyboardInterrupt``, ``SystemExit`` and ``MemoryError``. Opt in only where
  "catch everything" is really what you want.

Example:
    outcome = run_catching(int, raw).filter(
        lambda n: n > 0, lambda: InvalidArgumentError("must be positive")
    )
    match outcome:
        case Success(value):
            print(f"Got {value}")
        case Failure(error):
            print(f"Failed: {error}")
"""

from __future__ import annotations

import abc
import dataclasses
from typing import TYPE_CHECKING, Any, Never, cast

from cursor_agents.errors import InvalidArgumentError, InvalidStateError, NullValueError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

# Exception subclasses that are still treated as catastrophic.
_CATASTROPHIC: tuple[type[BaseException], ...] = (MemoryError,)


class Outcome[T, E: BaseException](abc.ABC):
    """The result of a fallible operation: ``Success`` or ``Failure``.

    Instances are immutable and safe to share between threads. Combinators
    return new outcomes, except where returning ``self`` unchanged is part of
    the contract (``recover`` and ``filter`` on success, the side-effect hooks).
    """

    __slots__ = ()

    # --- Construction ---

    @staticmethod
    def success[V](value: V) -> Success[V, Never]:
        """Return a successful outcome holding *value* (``None`` allowed)."""
        return Success(value)

    @staticmethod
    def failure[X: BaseException](error: X) -> Failure[Never, X]:
        """Return a failed outcome holding *error*.

        Raises:
            InvalidArgumentError: If *error* is ``None`` or not an exception.
        """
        return Failure(error)

    @staticmethod
    def from_nullable[V](
        value: V | None, error_factory: Callable[[], BaseException] | None = None
    ) -> Outcome[V, BaseException]:
        """Wrap *value* if it is not ``None``, else fail.

        Without *error_factory* the failure holds a ``NullValueError``.
        """
        if value is not None:
            return Success(value)
        if error_factory is None:
            return Failure(NullValueError("Value is None"))
        return Failure(error_factory())

    @staticmethod
    def from_predicate[V](
        value: V,
        predicate: Callable[[V], bool],
        error_factory: Callable[[], BaseException],
    ) -> Outcome[V, BaseException]:
        """Succeed with *value* when ``predicate(value)`` holds."""
        return Success(value) if predicate(value) else Failure(error_factory())

    @staticmethod
    def from_condition[V](
        condition: bool, value: V, error_factory: Callable[[], BaseException]
    ) -> Outcome[V, BaseException]:
        """Succeed with *value* when *condition* is true."""
        return Success(value) if condition else Failure(error_factory())

    @staticmethod
    def from_optional[V](
        optional: V | None, error_factory: Callable[[], BaseException]
    ) -> Outcome[V, BaseException]:
        """Convert an optional value (``V | None``) into an outcome."""
        return Outcome.from_nullable(optional, error_factory)

    @staticmethod
    def run_catching[V](
        fn: Callable[..., V], /, *args: Any, **kwargs: Any
    ) -> Outcome[V, BaseException]:
        """Call ``fn(*args, **kwargs)`` and capture whatever it raises.

        Every ``BaseException`` is captured, catastrophic ones included. This is
        the usual way to wrap a single blocking call (such as an HTTP request)
        into an outcome.
        """
        try:
            return Success(fn(*args, **kwargs))
        except BaseException as exc:
            return Failure(exc)

    @staticmethod
    def sequence[V](
        *outcomes: Outcome[V, BaseException] | Iterable[Outcome[V, BaseException]],
    ) -> Outcome[tuple[V, ...], BaseException]:
        """Collect the values of several outcomes, in order.

        Accepts outcomes as positional arguments or a single iterable of
        outcomes. Returns ``Success`` of a tuple of every value when all
        succeed, otherwise the first failure in iteration order. Iteration
        stops at that failure, so later items of a lazy iterable are never
        pulled. ``sequence()`` is ``Success(())``.
        """
        items: Iterable[Any]
        if len(outcomes) == 1 and not isinstance(outcomes[0], Outcome):
            try:
                items = iter(outcomes[0])
            except TypeError:
                raise InvalidArgumentError(
                    "sequence() expects outcomes or an iterable of outcomes, "
                    f"got {type(outcomes[0]).__name__}"
                ) from None
        else:
            items = outcomes

        values: list[V] = []
        for item in items:
            match item:
                case Success(value=value):
                    values.append(value)
                case Failure():
                    return cast("Failure[tuple[V, ...], BaseException]", item)
                case _:
                    raise InvalidArgumentError(
                        f"sequence() expects outcomes, got {type(item).__name__}"
                    )
        return Success(tuple(values))

    # --- Inspection ---

    @abc.abstractmethod
    def is_success(self) -> bool:
        """Return True for ``Success``; always the negation of ``is_failure``."""

    def is_failure(self) -> bool:
        """Return True for ``Failure``."""
        return not self.is_success()

    # --- Unwrapping ---

    @abc.abstractmethod
    def get_or_none(self) -> T | None:
        """Return the value, or ``None`` for a failure."""

    @abc.abstractmethod
    def error_or_none(self) -> E | None:
        """Return the error, or ``None`` for a success."""

    @abc.abstractmethod
    def get_or_raise(self) -> T:
        """Return the value, or raise the stored error itself (not a wrapper)."""

    @abc.abstractmethod
    def get_or_default(self, default: T) -> T: ...

    @abc.abstractmethod
    def get_or_else(self, on_failure: Callable[[E], T]) -> T:
        """Return the value, or ``on_failure(error)``."""

    @abc.abstractmethod
    def get_or_call(self, supplier: Callable[[], T]) -> T:
        """Return the value, or ``supplier()``."""

    @abc.abstractmethod
    def fold[R](
        self, on_success: Callable[[T], R], on_failure: Callable[[E], R]
    ) -> R:
        """Apply exactly one of the two functions, once, and return its result."""

    # --- Combinators ---

    @abc.abstractmethod
    def map[R](self, fn: Callable[[T], R]) -> Outcome[R, E | Exception]: ...

    @abc.abstractmethod
    def map_catching[R](self, fn: Callable[[T], R]) -> Outcome[R, BaseException]: ...

    @abc.abstractmethod
    def flat_map[R, X: BaseException](
        self, fn: Callable[[T], Outcome[R, X]]
    ) -> Outcome[R, E | X | Exception]: ...

    @abc.abstractmethod
    def flat_map_catching[R, X: BaseException](
        self, fn: Callable[[T], Outcome[R, X]]
    ) -> Outcome[R, BaseException]: ...

    @abc.abstractmethod
    def recover(self, fn: Callable[[E], T]) -> Outcome[T, Exception]: ...

    @abc.abstractmethod
    def recover_catching(self, fn: Callable[[E], T]) -> Outcome[T, BaseException]: ...

    @abc.abstractmethod
    def filter(
        self, predicate: Callable[[T], bool], error_factory: Callable[[], BaseException]
    ) -> Outcome[T, BaseException]: ...

    @abc.abstractmethod
    def combine[U, R](
        self, other: Outcome[U, BaseException], combiner: Callable[[T, U], R]
    ) -> Outcome[R, BaseException]: ...

    # --- Side effects ---

    def on_success(self, action: Callable[[T], object]) -> Outcome[T, E]:
        """Run *action* on the value of a success; return ``self``."""
        if isinstance(self, Success):
            action(self.value)
        return self

    def on_failure(self, action: Callable[[E], object]) -> Outcome[T, E]:
        """Run *action* on the error of a failure; return ``self``."""
        if isinstance(self, Failure):
            action(self.error)
        return self

    # peek/peek_error read better in logging chains
    peek = on_success
    peek_error = on_failure

    # --- Conversions ---

    def to_optional(self) -> T | None:
        """Return the value, or ``None``; use ``to_iterable`` to tell ``Success(None)`` apart."""
        return self.get_or_none()

    @abc.abstractmethod
    def to_iterable(self) -> tuple[T, ...]:
        """Return ``(value,)`` for a success and ``()`` for a failure."""

    # --- Serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready envelope of this outcome."""
        from cursor_agents.serialization import to_dict

        return to_dict(self)

    @staticmethod
    def from_dict(data: Any) -> Outcome[Any, BaseException]:
        """Rebuild an outcome from an envelope produced by ``to_dict``.

        Raises:
            InvalidStateError: If the envelope violates the two-variant invariant.
        """
        from cursor_agents.serialization import from_dict

        return from_dict(data)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[T, E: BaseException](Outcome[T, E]):
    """A successful outcome holding ``value``."""

    value: T

    def __reduce__(self) -> tuple[Any, ...]:
        return (_restore, ("success", self.value))

    def is_success(self) -> bool:
        return True

    def get_or_none(self) -> T:
        return self.value

    def error_or_none(self) -> None:
        return None

    def get_or_raise(self) -> T:
        return self.value

    def get_or_default(self, default: T) -> T:  # noqa: ARG002
        return self.value

    def get_or_else(self, on_failure: Callable[[E], T]) -> T:  # noqa: ARG002
        return self.value

    def get_or_call(self, supplier: Callable[[], T]) -> T:  # noqa: ARG002
        return self.value

    def fold[R](
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[E], R],  # noqa: ARG002
    ) -> R:
        return on_success(self.value)

    def map[R](self, fn: Callable[[T], R]) -> Outcome[R, E | Exception]:
        try:
            return Success(fn(self.value))
        except _CATASTROPHIC:
            raise
        except Exception as exc:
            return Failure(exc)

    def map_catching[R](self, fn: Callable[[T], R]) -> Outcome[R, BaseException]:
        try:
            return Success(fn(self.value))
        except BaseException as exc:
            return Failure(exc)

    def flat_map[R, X: BaseException](
        self, fn: Callable[[T], Outcome[R, X]]
    ) -> Outcome[R, E | X | Exception]:
        try:
            result = fn(self.value)
        except _CATASTROPHIC:
            raise
        except Exception as exc:
            return Failure(exc)
        return _require_outcome(result, fn)

    def flat_map_catching[R, X: BaseException](
        self, fn: Callable[[T], Outcome[R, X]]
    ) -> Outcome[R, BaseException]:
        try:
            result = fn(self.value)
        except BaseException as exc:
            return Failure(exc)
        return _require_outcome(result, fn)

    def recover(self, fn: Callable[[E], T]) -> Outcome[T, Exception]:  # noqa: ARG002
        return self

    def recover_catching(
        self,
        fn: Callable[[E], T],  # noqa: ARG002
    ) -> Outcome[T, BaseException]:
        return self

    def filter(
        self, predicate: Callable[[T], bool], error_factory: Callable[[], BaseException]
    ) -> Outcome[T, BaseException]:
        return self if predicate(self.value) else Failure(error_factory())

    def combine[U, R](
        self, other: Outcome[U, BaseException], combiner: Callable[[T, U], R]
    ) -> Outcome[R, BaseException]:
        if isinstance(other, Failure):
            return Failure(other.error)
        try:
            return Success(combiner(self.value, cast("Success[U, Any]", other).value))
        except _CATASTROPHIC:
            raise
        except Exception as exc:
            return Failure(exc)

    def to_iterable(self) -> tuple[T]:
        return (self.value,)


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[T, E: BaseException](Outcome[T, E]):
    """A failed outcome holding ``error``; the error can never be ``None``."""

    error: E

    def __post_init__(self) -> None:
        if self.error is None:
            raise InvalidArgumentError("Failure requires an error, got None")
        if not isinstance(self.error, BaseException):
            raise InvalidArgumentError(
                f"Failure requires an exception, got {type(self.error).__name__}",
                hint="Wrap plain error values in an exception type.",
            )

    def __reduce__(self) -> tuple[Any, ...]:
        return (_restore, ("failure", self.error))

    def is_success(self) -> bool:
        return False

    def get_or_none(self) -> None:
        return None

    def error_or_none(self) -> E:
        return self.error

    def get_or_raise(self) -> Never:
        raise self.error

    def get_or_default(self, default: T) -> T:
        return default

    def get_or_else(self, on_failure: Callable[[E], T]) -> T:
        return on_failure(self.error)

    def get_or_call(self, supplier: Callable[[], T]) -> T:
        return supplier()

    def fold[R](
        self,
        on_success: Callable[[T], R],  # noqa: ARG002
        on_failure: Callable[[E], R],
    ) -> R:
        return on_failure(self.error)

    # Pass-throughs re-wrap the same error under the new value type.

    def map[R](self, fn: Callable[[T], R]) -> Outcome[R, E]:  # noqa: ARG002
        return Failure(self.error)

    def map_catching[R](self, fn: Callable[[T], R]) -> Outcome[R, E]:  # noqa: ARG002
        return Failure(self.error)

    def flat_map[R, X: BaseException](
        self,
        fn: Callable[[T], Outcome[R, X]],  # noqa: ARG002
    ) -> Outcome[R, E]:
        return Failure(self.error)

    def flat_map_catching[R, X: BaseException](
        self,
        fn: Callable[[T], Outcome[R, X]],  # noqa: ARG002
    ) -> Outcome[R, E]:
        return Failure(self.error)

    def recover(self, fn: Callable[[E], T]) -> Outcome[T, Exception]:
        try:
            return Success(fn(self.error))
        except _CATASTROPHIC:
            raise
        except Exception as exc:
            return Failure(exc)

    def recover_catching(self, fn: Callable[[E], T]) -> Outcome[T, BaseException]:
        try:
            return Success(fn(self.error))
        except BaseException as exc:
            return Failure(exc)

    def filter(
        self,
        predicate: Callable[[T], bool],  # noqa: ARG002
        error_factory: Callable[[], BaseException],  # noqa: ARG002
    ) -> Outcome[T, E]:
        return self

    def combine[U, R](
        self,
        other: Outcome[U, BaseException],  # noqa: ARG002
        combiner: Callable[[T, U], R],  # noqa: ARG002
    ) -> Outcome[R, E]:
        return Failure(self.error)

    def to_iterable(self) -> tuple[()]:
        return ()


def _require_outcome(result: object, fn: object) -> Outcome[Any, BaseException]:
    if isinstance(result, Outcome):
        return result
    name = getattr(fn, "__qualname__", repr(fn))
    return Failure(
        InvalidStateError(
            f"flat_map function {name} returned {type(result).__name__}, not an Outcome",
            hint="Use map() for functions that return plain values.",
        )
    )


def _restore(tag: str, payload: Any) -> Outcome[Any, BaseException]:
    """Unpickle hook: rebuild a variant, re-checking the invariant."""
    if tag == "success":
        return Success(payload)
    if tag == "failure":
        if not isinstance(payload, BaseException):
            raise InvalidStateError(
                f"Corrupt Failure state: error is {type(payload).__name__}, not an exception"
            )
        return Failure(payload)
    raise InvalidStateError(f"Corrupt Outcome state: unknown variant {tag!r}")


success = Outcome.success
failure = Outcome.failure
from_nullable = Outcome.from_nullable
from_predicate = Outcome.from_predicate
from_condition = Outcome.from_condition
from_optional = Outcome.from_optional
run_catching = Outcome.run_catching
sequence = Outcome.sequence

__all__ = [
    "Failure",
    "Outcome",
    "Success",
    "failure",
    "from_condition",
    "from_nullable",
    "from_optional",
    "from_predicate",
    "run_catching",
    "sequence",
    "success",
]
