"""
Explicit success/failure results.

Public ledger, engine and coordinator operations return an ``Outcome`` instead
of raising, so callers at the presentation boundary never see an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not-found"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of an operation.

    A persistence failure may still carry a ``value``: the in-memory change it
    describes has been applied even though it could not be stored.
    """

    ok: bool
    value: T | None = None
    error: str | None = None
    kind: FailureKind | None = None

    @classmethod
    def success(cls, value: T | None = None) -> Outcome[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: FailureKind, error: str, value: T | None = None) -> Outcome[T]:
        return cls(ok=False, value=value, error=error, kind=kind)
