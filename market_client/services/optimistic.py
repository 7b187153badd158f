"""Apply-then-confirm helper shared by every optimistic mutation."""
from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

R = TypeVar("R")
S = TypeVar("S")


async def run_optimistic(
    *,
    apply: Callable[[], S],
    commit: Callable[[], Awaitable[R]],
    reconcile: Callable[[S, R], None],
    rollback: Callable[[S], None],
) -> R:
    """Run one optimistic mutation.

    ``apply`` changes local state synchronously and returns the record needed to undo
    exactly that change. ``commit`` performs the server call. If it raises (including
    cancellation) ``rollback`` receives the record and the exception propagates;
    otherwise ``reconcile`` merges the server's answer into the optimistic entry.
    """

    record = apply()
    try:
        confirmed = await commit()
    except BaseException:
        rollback(record)
        raise
    reconcile(record, confirmed)
    return confirmed


__all__ = ["run_optimistic"]
