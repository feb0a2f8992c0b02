"""TCP client sockets with awaitable connect, write and a buffering reader."""

from __future__ import annotations

import asyncio
import errno
import socket
from collections import deque
from typing import Any

EOF_CODE = -4095
ECANCELED_CODE = -errno.ECANCELED
_READ_SIZE = 65536


class TcpError(Exception):
    """A socket failure carrying a negative errno-style code and a message."""

    def __init__(self, code: int, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


def _error_from_os(exc: OSError) -> TcpError:
    code = -exc.errno if exc.errno else -1
    return TcpError(code, exc.strerror or str(exc))


def _invalid(what: str) -> TcpError:
    return TcpError(-errno.EINVAL, f"invalid argument: {what}")


def _check_port(port: int) -> None:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 0xFFFF:
        raise _invalid(f"port {port!r}")


def ip4_addr(ip: str, port: int) -> tuple[str, int]:
    """Validate an IPv4 address and port and return them as a socket address."""
    _check_port(port)
    try:
        socket.inet_pton(socket.AF_INET, ip)
    except (OSError, TypeError, ValueError) as exc:
        raise _invalid(repr(ip)) from exc
    return (ip, port)


def ip6_addr(ip: str, port: int) -> tuple[str, int, int, int]:
    """Validate an IPv6 address (optionally with %scope) and return a socket address."""
    _check_port(port)
    if not isinstance(ip, str):
        raise _invalid(repr(ip))
    host, _, scope = ip.partition("%")
    try:
        socket.inet_pton(socket.AF_INET6, host)
    except (OSError, ValueError) as exc:
        raise _invalid(repr(ip)) from exc
    scope_id = 0
    if scope:
        if scope.isdigit():
            scope_id = int(scope)
        else:
            try:
                scope_id = socket.if_nametoindex(scope)
            except OSError:
                scope_id = 0
    return (host, port, 0, scope_id)


def _family_of(address: tuple[Any, ...]) -> int:
    if len(address) == 4 or ":" in str(address[0]):
        return socket.AF_INET6
    return socket.AF_INET


class Tcp:
    """A TCP socket connected on the running event loop."""

    def __init__(self) -> None:
        self._sock: socket.socket | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connecting = False
        self._connected = False
        self._closed = False
        self._reader: TcpReader | None = None

    def __enter__(self) -> Tcp:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def connect(self, address: tuple[Any, ...]) -> None:
        """Connect to address, raising TcpError on failure."""
        if self._closed:
            raise TcpError(-errno.EBADF, "socket is closed")
        if self._connecting:
            raise TcpError(-1, "It's an error to listen to more than one connect at a socket at the time")
        self._connecting = True
        try:
            self._loop = asyncio.get_running_loop()
            if self._sock is None:
                try:
                    sock = socket.socket(_family_of(address), socket.SOCK_STREAM)
                except OSError as exc:
                    raise _error_from_os(exc) from exc
                sock.setblocking(False)
                self._sock = sock
            try:
                await self._loop.sock_connect(self._sock, address)
            except OSError as exc:
                raise _error_from_os(exc) from exc
            self._connected = True
        finally:
            self._connecting = False

    def sockname(self) -> tuple[Any, ...]:
        """Return the local address the socket is bound to."""
        if self._sock is None:
            raise TcpError(-errno.EBADF, "bad file descriptor")
        try:
            return self._sock.getsockname()
        except OSError as exc:
            raise _error_from_os(exc) from exc

    async def write(self, data: bytes | bytearray | memoryview) -> None:
        """Send all of data, raising TcpError on failure."""
        if self._sock is None or not self._connected:
            raise TcpError(-errno.ENOTCONN, "socket is not connected")
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendall(self._sock, bytes(data))
        except OSError as exc:
            raise _error_from_os(exc) from exc

    def create_reader(self) -> TcpReader:
        """Start reading from the socket; only one reader may be active at once."""
        if self._closed:
            raise TcpError(1, "Can not create a reader for a closed socket")
        if self._reader is not None:
            raise TcpError(
                1,
                "Can not create multiple active readers for a socket. Destroy other reader, before making a new one.",
            )
        if self._sock is None or not self._connected:
            raise TcpError(-errno.ENOTCONN, "socket is not connected")
        reader = TcpReader(self, self._sock, asyncio.get_running_loop())
        self._reader = reader
        return reader

    def close(self) -> None:
        """Stop any reader and close the socket."""
        if self._closed:
            return
        self._closed = True
        if self._reader is not None:
            self._reader.close()
        sock = self._sock
        self._sock = None
        self._connected = False
        if sock is None:
            return
        if self._loop is not None and not self._loop.is_closed() and sock.fileno() >= 0:
            self._loop.remove_reader(sock.fileno())
            self._loop.remove_writer(sock.fileno())
        sock.close()


class TcpReader:
    """Queues everything received on a Tcp socket until it is read."""

    def __init__(self, tcp: Tcp, sock: socket.socket, loop: asyncio.AbstractEventLoop) -> None:
        self._tcp = tcp
        self._sock = sock
        self._loop = loop
        self._queue: deque[bytes | TcpError] = deque()
        self._waiter: asyncio.Future | None = None
        self._cancelled = False
        self._active = True
        self._task = loop.create_task(self._pump())

    def __enter__(self) -> TcpReader:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def _pump(self) -> None:
        try:
            while True:
                data = await self._loop.sock_recv(self._sock, _READ_SIZE)
                if not data:
                    self._push(TcpError(EOF_CODE, "end of file"))
                    return
                self._push(data)
        except OSError as exc:
            self._push(_error_from_os(exc))

    def _push(self, item: bytes | TcpError) -> None:
        self._queue.append(item)
        self._wake()

    def _wake(self) -> None:
        waiter = self._waiter
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    def cancel(self) -> None:
        """Queue a cancellation error for the reader; repeated calls do nothing."""
        if self._cancelled:
            return
        self._cancelled = True
        self._push(TcpError(ECANCELED_CODE, "Operation was cancelled"))

    def is_cancelled(self) -> bool:
        return self._cancelled

    async def read(self) -> bytes:
        """Return the next received chunk, raising TcpError for EOF or failure."""
        while not self._queue:
            if not self._active:
                raise TcpError(1, "reader is closed")
            waiter = self._loop.create_future()
            self._waiter = waiter
            try:
                await waiter
            finally:
                self._waiter = None
        item = self._queue.popleft()
        if isinstance(item, TcpError):
            raise item
        return item

    def __aiter__(self) -> TcpReader:
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self.read()
        except TcpError as exc:
            if exc.code in (EOF_CODE, ECANCELED_CODE):
                raise StopAsyncIteration from exc
            raise

    def close(self) -> None:
        """Stop reading; the socket may get a new reader afterwards."""
        if not self._active:
            return
        self._active = False
        self._task.cancel()
        if self._tcp._reader is self:
            self._tcp._reader = None
        self._wake()