"""
Explicit success/error result type.

Pipeline components return ``Ok(value)`` or ``Err(error)`` instead of raising,
so callers must branch on the outcome before touching the value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


__all__ = ["Ok", "Err", "Result"]
