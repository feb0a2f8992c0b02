"""Thread-safe delivery of events into an asyncio event loop."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Any


class EventPipe:
    """Queue events from any thread and run a callback for each on the loop.

    Posts made before the loop gets around to draining are delivered in one
    batch, in the order they were posted.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._callback = callback
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._events: list[tuple[Any, ...]] = []
        self._lock = threading.Lock()
        self._scheduled = False

    def post_event(self, *args: Any) -> None:
        """Queue an event; safe to call from any thread."""
        with self._lock:
            self._events.append(args)
            if self._scheduled:
                return
            self._scheduled = True
        self._loop.call_soon_threadsafe(self._drain)

    def __call__(self, *args: Any) -> None:
        self.post_event(*args)

    def _drain(self) -> None:
        with self._lock:
            events, self._events = self._events, []
            self._scheduled = False
        for event in events:
            self._callback(*event)