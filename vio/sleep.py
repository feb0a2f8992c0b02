"""Timer that starts when created and completes when its delay has passed."""

from __future__ import annotations

import asyncio
from datetime import timedelta


def _finish(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)


def sleep(milliseconds: float | timedelta) -> asyncio.Future:
    """Start a timer on the running loop and return a future for its expiry.

    The timer runs from the moment of the call, so several timers created
    together elapse concurrently regardless of when they are awaited.
    """
    if isinstance(milliseconds, timedelta):
        seconds = milliseconds.total_seconds()
    else:
        seconds = milliseconds / 1000
    if seconds < 0:
        raise ValueError("sleep duration must not be negative")
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    handle = loop.call_later(seconds, _finish, future)
    future.add_done_callback(lambda _f: handle.cancel())
    return future