from __future__ import annotations

"""
Single-operation re-entry lock.

Bond deposits/redemptions and epoch advances call out to collaborators
(tokens, treasury, distributor) before their own bookkeeping is final. A
collaborator that calls back into the same component mid-operation would see
half-written state, so every public mutating entry point is wrapped with
`non_reentrant`.

The guard also serializes callers from different threads: a coarse
`threading.RLock` is held for the duration of the operation, and the
`_entered` flag distinguishes a same-thread re-entry (rejected with
`Reentrancy`) from a second thread waiting its turn.
"""


import functools
from contextlib import contextmanager
from threading import RLock
from typing import Any, Callable, Iterator, Optional, TypeVar

from .errors import Reentrancy

F = TypeVar("F", bound=Callable[..., Any])


class ReentrancyGuard:
    __slots__ = ("_lock", "_entered", "_op")

    def __init__(self) -> None:
        self._lock = RLock()
        self._entered = False
        self._op: Optional[str] = None

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def enter(self, op: str) -> Iterator[None]:
        with self._lock:
            if self._entered:
                raise Reentrancy(
                    "re-entrant call rejected",
                    details={"op": op, "active": self._op or ""},
                )
            self._entered = True
            self._op = op
            try:
                yield
            finally:
                self._entered = False
                self._op = None


def non_reentrant(fn: F) -> F:
    """Method decorator; the instance must expose a `_guard: ReentrancyGuard`."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._guard.enter(fn.__name__):
            return fn(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


__all__ = ["ReentrancyGuard", "non_reentrant"]
