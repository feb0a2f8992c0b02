"""Non-blocking stream driven by socket readiness, with queued reads and writes."""

from __future__ import annotations

import asyncio
import enum
import socket
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from vio.elastic_index_storage import ElasticIndexStorage

_QUEUE_CAPACITY = 10


class StreamIOResult(enum.Enum):
    """Outcome of one native read or write attempt."""

    OK = "ok"
    POLL_IN = "poll_in"
    POLL_OUT = "poll_out"


class StreamError(Exception):
    """A stream failure with a numeric code and a message."""

    def __init__(self, code: int, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


class NativeStream(Protocol):
    """The transport a SocketStream drives.

    read(size) returns (result, data) and write(data) returns
    (result, bytes_written); both raise StreamError on failure.
    """

    def read(self, size: int) -> tuple[StreamIOResult, bytes]: ...

    def write(self, data: memoryview) -> tuple[StreamIOResult, int]: ...

    def close(self) -> None: ...


@dataclass(eq=False)
class _WriteState:
    data: memoryview
    future: asyncio.Future
    written: int = 0
    error: StreamError | None = None
    ref: int = 2
    done: bool = False


def _as_stream_error(exc: OSError) -> StreamError:
    code = exc.errno if exc.errno is not None else -1
    return StreamError(code, exc.strerror or str(exc))


class SocketStream:
    """Pumps a native stream whenever its socket becomes readable or writable."""

    def __init__(self, native: NativeStream, buffer_size: int = 65536) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer_size must be greater than 0")
        self.native = native
        self.buffer_size = buffer_size
        self.connected = False
        self.closed = False
        self.poll_read_active = False
        self.poll_write_active = False
        self.read_got_poll_out = False
        self.write_got_poll_in = False
        self.poll_running = False
        self.reader_active = False

        self._loop: asyncio.AbstractEventLoop | None = None
        self._fd: int | None = None
        self._read_registered = False
        self._write_registered = False

        self._buffers: deque[bytearray | StreamError] = deque()
        self._chunk_waiter: asyncio.Future | None = None

        self._exact_target: bytearray | None = None
        self._exact_size = 0
        self._exact_error: StreamError | None = None
        self._exact_waiter: asyncio.Future | None = None

        self._write_queue: ElasticIndexStorage[_WriteState | None] = ElasticIndexStorage()
        self._pending_writes: set[_WriteState] = set()

    def connect(self, sock: socket.socket | int) -> None:
        """Attach the stream to a socket (or file descriptor) on the running loop."""
        fd = sock if isinstance(sock, int) else sock.fileno()
        if fd < 0:
            raise StreamError(1, "Failed to initialize poll, bad file descriptor")
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise StreamError(1, f"Failed to initialize poll, {exc}") from exc
        self._fd = fd
        self.connected = True

    def close(self) -> None:
        """Stop polling, close the native stream and fail any pending waiters."""
        if self.closed:
            return
        self.poll_read_active = False
        self.poll_write_active = False
        self.closed = True
        self._unregister()
        self.native.close()
        error = StreamError(-1, "stream closed")
        for waiter in (self._chunk_waiter, self._exact_waiter):
            if waiter is not None and not waiter.done():
                waiter.set_exception(error)
        for state in list(self._pending_writes):
            if not state.done:
                state.error = error
                state.done = True
                if not state.future.done():
                    state.future.set_result(None)
        self._pending_writes.clear()

    def has_buffer_with_data_or_error(self) -> bool:
        if not self._buffers:
            return False
        front = self._buffers[0]
        if isinstance(front, StreamError):
            return front.code != 0
        return len(front) > 0

    def create_reader(self) -> StreamReader:
        """Start reading into the buffer queue and return the reader for it."""
        if not self.connected:
            raise StreamError(1, "Can not create a reader for a stream that is not connected")
        if self.reader_active:
            raise StreamError(1, "Can not create multiple active readers for a stream")
        return StreamReader(self)

    async def write(self, data: bytes | bytearray | memoryview) -> None:
        """Write all of data, raising StreamError if the stream fails."""
        if not self.connected or self.closed:
            raise StreamError(1, "Can not write to a stream that is not connected")
        view = memoryview(bytes(data))
        if not view:
            return
        assert self._loop is not None
        state = _WriteState(data=view, future=self._loop.create_future())
        index = self._write_queue.activate_with_value(state)
        self._pending_writes.add(state)
        self._write()
        self._set_poll_state()
        try:
            await state.future
        finally:
            state.ref -= 1
            if state.ref == 0:
                state.done = False
                self._write_queue.deactivate(index)
        if state.error is not None:
            raise StreamError(-1, state.error.msg)

    # -- polling -----------------------------------------------------------

    def _set_poll_state(self) -> None:
        if self.closed or self._fd is None or self._loop is None:
            return
        want_read = self.poll_read_active and (self.write_got_poll_in or self.reader_active)
        want_write = self.poll_write_active
        if want_read != self._read_registered:
            if want_read:
                self._loop.add_reader(self._fd, self._on_readable)
            else:
                self._loop.remove_reader(self._fd)
            self._read_registered = want_read
        if want_write != self._write_registered:
            if want_write:
                self._loop.add_writer(self._fd, self._on_writable)
            else:
                self._loop.remove_writer(self._fd)
            self._write_registered = want_write
        self.poll_running = want_read or want_write

    def _unregister(self) -> None:
        if self._loop is not None and self._fd is not None:
            if self._read_registered:
                self._loop.remove_reader(self._fd)
            if self._write_registered:
                self._loop.remove_writer(self._fd)
        self._read_registered = False
        self._write_registered = False
        self.poll_running = False

    def _on_readable(self) -> None:
        if self.closed:
            return
        if self.write_got_poll_in:
            self.write_got_poll_in = False
            self._write()
        self._read()
        self._set_poll_state()

    def _on_writable(self) -> None:
        if self.closed:
            return
        if self.read_got_poll_out:
            self.read_got_poll_out = False
            self._read()
        else:
            self._write()
        self._set_poll_state()

    # -- reading -----------------------------------------------------------

    def _native_read(self, size: int) -> tuple[StreamIOResult, bytes]:
        try:
            return self.native.read(size)
        except OSError as exc:
            raise _as_stream_error(exc) from exc

    def _read(self) -> None:
        self.read_got_poll_out = False
        try:
            if self._exact_target is not None:
                self._read_direct(self._exact_target)
            else:
                self._fill_queue()
        finally:
            self._notify_readers()

    def _read_direct(self, target: bytearray) -> None:
        while len(target) < self._exact_size:
            try:
                result, chunk = self._native_read(self._exact_size - len(target))
            except StreamError as exc:
                self._exact_error = exc
                self.poll_read_active = False
                return
            target += chunk
            if result is StreamIOResult.POLL_OUT:
                self.read_got_poll_out = True
                self.poll_write_active = True
                return
            if result is StreamIOResult.POLL_IN or not chunk:
                self.poll_read_active = True
                return

    def _fill_queue(self) -> None:
        buffers = self._buffers
        while len(buffers) < _QUEUE_CAPACITY:
            last = buffers[-1] if buffers else None
            if isinstance(last, bytearray) and len(last) < self.buffer_size:
                current = last
            else:
                current = bytearray()
                buffers.append(current)
            try:
                result, chunk = self._native_read(self.buffer_size - len(current))
            except StreamError as exc:
                if not current:
                    buffers[-1] = exc
                elif len(buffers) < _QUEUE_CAPACITY:
                    buffers.append(exc)
                self.poll_read_active = False
                return
            current += chunk
            if result is StreamIOResult.POLL_IN or not chunk:
                self.poll_read_active = True
                return
            if result is StreamIOResult.POLL_OUT:
                self.poll_write_active = True
                self.read_got_poll_out = True
                return
        self.poll_read_active = False

    def _notify_readers(self) -> None:
        target = self._exact_target
        if target is not None:
            waiter = self._exact_waiter
            if (
                waiter is not None
                and not waiter.done()
                and (len(target) >= self._exact_size or self._exact_error is not None)
            ):
                waiter.set_result(None)
            return
        waiter = self._chunk_waiter
        if waiter is not None and not waiter.done() and self.has_buffer_with_data_or_error():
            waiter.set_result(None)

    # -- writing -----------------------------------------------------------

    def _finish_write(self, state: _WriteState) -> None:
        state.done = True
        self._pending_writes.discard(state)
        if not state.future.done():
            state.future.set_result(None)
        state.ref -= 1
        if state.ref == 0:
            self._write_queue.deactivate_current()
        self._write_queue.next()

    def _write(self) -> None:
        queue = self._write_queue
        if not queue.current_item_is_active() and not queue.next():
            return
        while queue.current_item_is_active():
            state = queue.current_item()
            assert state is not None
            try:
                result, written = self.native.write(state.data[state.written:])
            except OSError as exc:
                state.error = _as_stream_error(exc)
                self._finish_write(state)
                continue
            except StreamError as exc:
                state.error = exc
                self._finish_write(state)
                continue
            if written > 0:
                state.written += written
                if state.written >= len(state.data):
                    self._finish_write(state)
            if result is StreamIOResult.POLL_OUT:
                self.poll_write_active = True
                return
            if result is StreamIOResult.POLL_IN:
                self.poll_read_active = True
                self.write_got_poll_in = True
                return
        self.poll_write_active = False


class StreamReader:
    """The single active reader of a SocketStream."""

    def __init__(self, stream: SocketStream) -> None:
        self._stream = stream
        self._active = True
        stream.reader_active = True
        stream._read()
        stream._set_poll_state()

    def __enter__(self) -> StreamReader:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def read_chunk(self) -> bytes:
        """Return the next buffered chunk, waiting for one if needed."""
        stream = self._stream
        self._check_active()
        while not stream.has_buffer_with_data_or_error():
            if stream.closed:
                raise StreamError(-1, "stream closed")
            await self._wait(lambda fut: setattr(stream, "_chunk_waiter", fut), "_chunk_waiter")
        was_full = len(stream._buffers) >= _QUEUE_CAPACITY
        front = stream._buffers.popleft()
        if was_full and not stream.closed:
            stream._read()
            stream._set_poll_state()
        if isinstance(front, StreamError):
            raise front
        return bytes(front)

    async def read_exactly(self, size: int) -> bytes:
        """Return exactly size bytes, taking queued data first."""
        if size < 0:
            raise ValueError("size must not be negative")
        stream = self._stream
        self._check_active()
        target = bytearray()
        buffers = stream._buffers
        while buffers and len(target) < size:
            front = buffers[0]
            if isinstance(front, StreamError):
                buffers.popleft()
                raise front
            to_copy = min(len(front), size - len(target))
            target += front[:to_copy]
            if to_copy == len(front):
                buffers.popleft()
            else:
                del front[:to_copy]
        if len(target) >= size:
            return bytes(target)
        if stream.closed:
            raise StreamError(-1, "stream closed")

        stream._exact_target = target
        stream._exact_size = size
        stream._exact_error = None
        try:
            stream._read()
            stream._set_poll_state()
            while len(target) < size and stream._exact_error is None:
                await self._wait(lambda fut: setattr(stream, "_exact_waiter", fut), "_exact_waiter")
            error = stream._exact_error
        finally:
            stream._exact_target = None
            stream._exact_waiter = None
            stream._exact_error = None
        if error is not None:
            raise error
        return bytes(target)

    def close(self) -> None:
        """Stop reading for this reader."""
        if not self._active:
            return
        self._active = False
        self._stream.reader_active = False
        self._stream._set_poll_state()

    def _check_active(self) -> None:
        if not self._active:
            raise StreamError(1, "reader is closed")

    async def _wait(self, install: Callable[[asyncio.Future], None], attr: str) -> None:
        stream = self._stream
        assert stream._loop is not None
        future = stream._loop.create_future()
        install(future)
        try:
            await future
        finally:
            setattr(stream, attr, None)