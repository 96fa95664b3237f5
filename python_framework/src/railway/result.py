"""
Result monad — the core of Railway-Oriented Programming.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
Fallible operations return Result instead of raising; errors travel along
the failure track untouched while .map()/.flat_map() keep the happy path.

    ┌───────────┐   flat_map    ┌───────────┐   flat_map    ┌──────────┐
    │  resolve  │──Success──────│   read    │──Success──────│  cache   │──→ Result[T]
    │           │               │           │               │          │
    └─────┬─────┘               └─────┬─────┘               └─────┬────┘
          │ Failure                   │ Failure                   │ Failure
          └───────────────────────────┴───────────────────────────┴──→ Result[T]

Each track implements the operations for its own side: Success applies
the callback, Failure hands itself back. Both support `match`:

    match calculate(prefix):
        case Success(digit):
            ...
        case Failure(error):
            ...
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar

from railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


class Result(Generic[T]):
    """
    Common interface of the two tracks.

        >>> Result.success("0042").map(int).value()
        42
        >>> Result.failure(ErrorCode.VALIDATION_ERROR, "bad digit").map(int).is_failure()
        True
    """

    __slots__ = ()

    # ──────────────────────── Introspection ────────────────────────

    def is_success(self) -> bool:
        raise NotImplementedError

    def is_failure(self) -> bool:
        return not self.is_success()

    def value(self) -> T:
        """The success value; ValueError on a Failure. Prefer either() or get_or_else()."""
        raise NotImplementedError

    def error(self) -> FailureDescription:
        """The failure description; ValueError on a Success."""
        raise NotImplementedError

    # ──────────────────────── Transformations ────────────────────────

    def either(
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[FailureDescription], R],
    ) -> R:
        """
        Fold both tracks into one value.

            exit_code = result.either(lambda key: 0, lambda err: 1)
        """
        raise NotImplementedError

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        raise NotImplementedError

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        """Chain a Result-returning step; the first Failure wins."""
        raise NotImplementedError

    # ──────────────────────── Side Effects ────────────────────────

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Run `action` on the value (logging, caching) and return self unchanged."""
        return self

    def peek_failure(self, action: Callable[[FailureDescription], Any]) -> Result[T]:
        return self

    def get_or_else(self, default: T) -> T:
        raise NotImplementedError

    # ──────────────────────── Static Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: BaseException | None = None,
    ) -> Result[Any]:
        """
        Failed Result with an error code, a message and the exception behind it.

            Result.failure(ErrorCode.NOT_FOUND, "No certificate matches 0x1a2b", error)
        """
        return Failure(FailureDescription(code=code, message=message, exception=exception))

    @staticmethod
    def from_computation(
        computation: Callable[[], T],
        error_code: ErrorCode,
        error_message: str,
    ) -> Result[T]:
        """
        Run a computation that may raise; an exception becomes a Failure
        carrying `error_code`, `error_message` and the exception itself.

            Result.from_computation(
                lambda: Path(path).read_bytes(),
                ErrorCode.TECHNICAL_ERROR,
                f"Failed to read certificate file {path}",
            )
        """
        try:
            return Success(computation())
        except Exception as e:
            return Failure(FailureDescription(code=error_code, message=error_message, exception=e))

    @staticmethod
    def all_of(results: Iterable[Result[T]]) -> Result[list[T]]:
        """Values of every Success in order, or the first Failure."""
        values: list[T] = []
        for result in results:
            if result.is_failure():
                return Failure(result.error())
            values.append(result.value())
        return Success(values)

    def __bool__(self) -> bool:
        """Truthy only on Success."""
        return self.is_success()


@dataclass(frozen=True, slots=True, eq=False)
class Success(Result[T]):
    """The success track — wraps a value of type T (never None)."""

    _value: T

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def is_success(self) -> bool:
        return True

    def value(self) -> T:
        return self._value

    def error(self) -> NoReturn:
        raise ValueError(f"Cannot get error from a Success: {self._value!r}")

    def either(self, on_success: Callable[[T], R], on_failure: Callable[[FailureDescription], R]) -> R:
        return on_success(self._value)

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        return Success(mapper(self._value))

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        return mapper(self._value)

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        action(self._value)
        return self

    def get_or_else(self, default: T) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Result):
            return isinstance(other, Success) and self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Success", self._value))


# case Success(value)
Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True, eq=False)
class Failure(Result[T]):
    """
    The failure track — wraps a FailureDescription.

    Equality compares code and message only, so two failures built at
    different moments for the same reason are equal.
    """

    _error: FailureDescription

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        object.__setattr__(self, "_error", error)

    def is_success(self) -> bool:
        return False

    def value(self) -> NoReturn:
        raise ValueError(f"Cannot get value from a Failure: {self._error.message}")

    def error(self) -> FailureDescription:
        return self._error

    def either(self, on_success: Callable[[T], R], on_failure: Callable[[FailureDescription], R]) -> R:
        return on_failure(self._error)

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        return Failure(self._error)

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        return Failure(self._error)

    def peek_failure(self, action: Callable[[FailureDescription], Any]) -> Result[T]:
        action(self._error)
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Result):
            return (
                isinstance(other, Failure)
                and self._error.code == other._error.code
                and self._error.message == other._error.message
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Failure", self._error.code, self._error.message))


# case Failure(error)
Failure.__match_args__ = ("_error",)
