"""
Result values returned by the engine's public surface.

Every public `Engine` method returns either ``Ok(value)`` or ``Err(error)``
instead of raising, so callers branch on the outcome explicitly:

    res = await engine.get_balance(address)
    if res.is_ok():
        print(res.unwrap())
    else:
        print("failed:", res.unwrap_err())
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class UnwrapError(Exception):
    """Raised when unwrapping the wrong side of a result."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise UnwrapError(f"called unwrap_err() on Ok: {self.value!r}", self.value)

    def unwrap_or(self, default: Any) -> T:
        return self.value

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def and_then(self, fn: Callable[[T], "Result[U, Any]"]) -> "Result[U, Any]":
        return fn(self.value)


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        if isinstance(self.error, BaseException):
            raise UnwrapError(f"called unwrap() on Err: {self.error}", self.error) from self.error
        raise UnwrapError(f"called unwrap() on Err: {self.error}", self.error)

    def unwrap_err(self) -> E:
        return self.error

    def unwrap_or(self, default: U) -> U:
        return default

    def map(self, fn: Callable[[Any], Any]) -> "Err[E]":
        return self

    def and_then(self, fn: Callable[[Any], Any]) -> "Err[E]":
        return self


Result = Union[Ok[T], Err[E]]

__all__ = ["Ok", "Err", "Result", "UnwrapError"]
