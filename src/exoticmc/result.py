"""
Result type for explicit error handling.

Validation code in *exoticmc* returns ``Success``/``Failure`` instead of
raising, so callers decide at the boundary whether a bad contract or run
configuration is fatal.  Device failures are a different story and use the
exception hierarchy in :mod:`exoticmc.errors.device`.

Usage:
    >>> def num_timesteps(tenor: float, dt: float) -> Result[int, str]:
    ...     steps = int(tenor / dt)
    ...     return Success(steps) if steps >= 1 else Failure("tenor shorter than one step")
    ...
    >>> match num_timesteps(1.0 / 3.0, 1.0 / 261.0):
    ...     case Success(steps):
    ...         print(f"steps: {steps}")
    ...     case Failure(error):
    ...         print(f"Error: {error}")
    steps: 87
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, NoReturn, TypeVar


T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Represents a successful result containing a value of type T."""

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Unwrap the success value. Safe to call on Success."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        """Map the success value through function f."""
        return Success(f(self.value))

    def map_error(self, f: Callable[[E], F]) -> Result[T, F]:
        """No-op on Success."""
        result: Result[T, F] = Success(self.value)
        return result

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind: chain operations that return Result."""
        return f(self.value)


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Represents a failed result containing an error of type E."""

    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """
        Unwrap the success value.

        Raises:
            RuntimeError: Always, since Failure has no value.
        """
        raise RuntimeError(f"Called unwrap() on Failure: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        """No-op on Failure."""
        result: Result[U, E] = Failure(self.error)
        return result

    def map_error(self, f: Callable[[E], F]) -> Result[T, F]:
        """Map the error value through function f."""
        return Failure(f(self.error))

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """No-op on Failure."""
        result: Result[U, E] = Failure(self.error)
        return result


# Type alias for the union of Success and Failure
Result = Success[T] | Failure[E]


__all__ = ["Failure", "Result", "Success"]
