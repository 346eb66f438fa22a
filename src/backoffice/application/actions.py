from __future__ import annotations

import itertools
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

T = TypeVar("T")


class ActionInProgress(Exception):
    pass


class ActionGuard:
    """Keeps at most one in-flight call per control.

    Views register their button as ``key``; while the call runs the
    ``on_busy(key, True)`` hook disables it, and a second trigger of the same
    key is refused. Different keys never block each other.
    """

    def __init__(self, on_busy: Optional[Callable[[str, bool], None]] = None):
        self._running: set[str] = set()
        self._on_busy = on_busy

    def is_running(self, key: str) -> bool:
        return key in self._running

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        if key in self._running:
            raise ActionInProgress(key)
        self._running.add(key)
        if self._on_busy:
            self._on_busy(key, True)
        try:
            yield
        finally:
            self._running.discard(key)
            if self._on_busy:
                self._on_busy(key, False)

    def run(self, key: str, fn: Callable[[], T]) -> Optional[T]:
        """Run ``fn`` under ``key``; returns None without calling it when already running."""
        try:
            with self.hold(key):
                return fn()
        except ActionInProgress:
            return None


class ResponseTracker:
    """Tells a view whether a response still belongs to its latest request."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}

    def begin(self, view: str) -> int:
        ticket = next(self._counter)
        self._latest[view] = ticket
        return ticket

    def is_current(self, view: str, ticket: int) -> bool:
        return self._latest.get(view) == ticket

    def deliver(self, view: str, ticket: int, apply: Callable[[], None]) -> bool:
        if not self.is_current(view, ticket):
            return False
        apply()
        return True
