"""Marshaling of engine callbacks onto the thread that owns navigation state.

Engines may report progress and completion from a synthesis thread. Navigation
state is only touched by its owning thread, so adapters post callbacks here and
the owner runs them with `drain()`.
"""

from __future__ import annotations

import queue
from collections.abc import Callable
from typing import Any


class CallbackMarshal:
    """Thread-safe FIFO of deferred callbacks."""

    def __init__(self) -> None:
        """Initialize an empty callback queue."""

        self._pending: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue `callback(*args)` from any thread."""

        self._pending.put((callback, args))

    def wrap(self, callback: Callable[..., Any]) -> Callable[..., None]:
        """Return a function that posts `callback` instead of calling it."""

        def _posting(*args: Any) -> None:
            self.post(callback, *args)

        return _posting

    def drain(self) -> int:
        """Run queued callbacks in order on the calling thread; return how many ran."""

        ran = 0
        while True:
            try:
                callback, args = self._pending.get_nowait()
            except queue.Empty:
                return ran
            callback(*args)
            ran += 1

    def __len__(self) -> int:
        return self._pending.qsize()
