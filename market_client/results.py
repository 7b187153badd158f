"""Non-throwing outcome returned by stores and actions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import ClientError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    data: T | None = None
    error: ClientError | None = None
    # True when the response arrived after the store moved on and was dropped
    stale: bool = False

    @classmethod
    def success(cls, data: T | None = None) -> "Result[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: ClientError) -> "Result[T]":
        return cls(ok=False, error=error)

    @classmethod
    def discarded(cls) -> "Result[T]":
        return cls(ok=False, stale=True)

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None


__all__ = ["Result"]
