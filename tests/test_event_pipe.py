import asyncio
import threading

import pytest

from vio.event_pipe import EventPipe


class _Collector:
    """Records every call's arguments and the thread it ran on."""

    def __init__(self):
        self.calls = []
        self.threads = []

    def __call__(self, *args):
        self.calls.append(args)
        self.threads.append(threading.get_ident())


async def _wait_for_calls(collector, count, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(collector.calls) < count:
        if loop.time() > deadline:
            raise TimeoutError("events did not arrive")
        await asyncio.sleep(0.001)


@pytest.mark.asyncio
async def test_events_from_thread_arrive_in_order():
    collector = _Collector()
    expected = list(range(20))

    pipe = EventPipe(collector, asyncio.get_running_loop())
    thread = threading.Thread(target=lambda: [pipe.post_event(v) for v in expected])
    thread.start()
    await _wait_for_calls(collector, len(expected))
    thread.join()
    assert collector.calls == [(v,) for v in expected]


@pytest.mark.asyncio
async def test_call_posts_multiple_arguments():
    collector = _Collector()
    pipe = EventPipe(collector)
    pipe("answer", 42)
    await _wait_for_calls(collector, 1)
    assert collector.calls == [("answer", 42)]


@pytest.mark.asyncio
async def test_callback_runs_on_loop_thread():
    collector = _Collector()
    pipe = EventPipe(collector)
    worker = threading.Thread(target=pipe.post_event)
    worker.start()
    worker.join()
    await _wait_for_calls(collector, 1)
    assert collector.calls == [()]
    assert collector.threads == [threading.get_ident()]


@pytest.mark.asyncio
async def test_no_delivery_before_loop_runs():
    received = []
    pipe = EventPipe(received.append)
    pipe.post_event("first")
    pipe.post_event("second")
    assert received == []
    await asyncio.sleep(0.01)
    assert received == ["first", "second"]


def test_requires_loop_outside_running_loop():
    with pytest.raises(RuntimeError):
        EventPipe(print)