# vio

Small asyncio building blocks for network programs. Everything runs on the
standard asyncio event loop. There are no third-party dependencies.

## Modules

- `vio.sleep`: `sleep(milliseconds)` starts a timer on the running loop
  and returns a future that completes when the timer expires. The timer
  starts when `sleep` is called, not when the future is awaited, so timers
  created together run at the same time. It takes a number of milliseconds
  or a `datetime.timedelta`. A negative duration raises `ValueError`.
- `vio.dns`: `get_addrinfo(host, hints=None)` resolves a host name to a
  list of `AddressInfo` values, filtered by the `flags`, `family`,
  `socktype` and `protocol` of the hints. `get_nameinfo(addr, flags)` does
  the reverse lookup and returns a `NameInfo(host, service)`. By default it
  uses numeric host and numeric service. Both raise `DnsError`, which has
  `code` and `msg`. `AddressInfo.sockaddr()` returns the socket address, or
  `None` if there is none.
- `vio.tcp`: `Tcp` is a client socket. It has `await connect(address)`,
  `await write(data)`, `sockname()`, `create_reader()` and `close()`, and
  it works as a context manager. Only one `TcpReader` may be active at a
  time. The reader queues everything it receives. `await read()` returns
  the next chunk. `async for` iterates chunks until end of file or
  cancellation. `cancel()` queues a cancellation error, `is_cancelled()`
  reports whether that has happened, and `close()` stops reading.
  `ip4_addr(ip, port)` and `ip6_addr(ip, port)` check an address and return
  the socket-address tuple. Failures raise `TcpError`, which has a negative
  errno-style `code` and a `msg`.
- `vio.socket_stream`: `SocketStream` drives a non-blocking transport
  whenever its socket is readable or writable. A transport is any object
  with `read(size)`, `write(data)` and `close()` that reports
  `StreamIOResult.OK`, `POLL_IN` or `POLL_OUT`.
  - Call `connect(sock)` on the running loop. After that, `await write(data)`
    queues writes in order.
  - `create_reader()` returns the single active `StreamReader`. It has
    `await read_chunk()`, `await read_exactly(size)` and `close()`.
  - Reads are buffered in chunks of up to `buffer_size` bytes, with at most
    ten chunks queued.
  - Failures raise `StreamError`.
- `vio.tls_common`:
  - `SslConfig` holds CA, certificate/key, cipher, ALPN, protocol and
    verification settings. `create_tls_config(config,
    default_ca_certificates="", server_side=False)` turns it into an
    `ssl.SSLContext`. `TlsProtocol` flags select the protocol versions.
  - `get_default_ca_certificates()` returns the system's trusted roots as
    PEM text.
  - `TlsStream(ssl_object, sock)` wraps a non-blocking `ssl.SSLSocket` as a
    transport for `SocketStream`.
  - Errors raise `TlsError`, a subclass of `StreamError`. OCSP stapling is
    rejected with `TlsError`. `dheparams`, `ecdhecurve` and `verify_depth`
    are accepted but have no effect.
- `vio.event_pipe`: `EventPipe(callback, loop=None)` takes events from any
  thread through `post_event(*args)` or by calling the pipe. It runs the
  callback for each event on the loop, in the order they were posted.
- `vio.elastic_index_storage`: `ElasticIndexStorage` is a container of
  slots with stable integer indexes.
  - `activate()` and `activate_with_value()` take the lowest free slot,
    growing the storage when it is full. `deactivate()` frees a slot and
    shrinks the storage back to its preferred size when the top is empty.
  - `current_item()`, `next()` and `deactivate_current()` visit the
    activated slots in insertion order.
- `vio.bit_mask`: `BitMask(*flags)` combines integer-valued enum members
  into one immutable mask. It supports `|`, `&`, `^` and `~`, and equality
  with masks and members. `value()` returns the integer and
  `BitMask.from_value(n)` builds a mask from one.

## Installation

```
pip install .
```

## Example

```python
import asyncio

from vio.dns import AddressInfo, get_addrinfo
from vio.sleep import sleep
from vio.tcp import Tcp, ip4_addr


async def main():
    await sleep(32)
    infos = await get_addrinfo("localhost", AddressInfo())
    print([info.family for info in infos])

    with Tcp() as tcp:
        await tcp.connect(ip4_addr("127.0.0.1", 8080))
        await tcp.write(b"hello")
        with tcp.create_reader() as reader:
            async for chunk in reader:
                print(chunk)
                break


asyncio.run(main())
```

## What it does not do

- There is no TCP server: sockets can connect, but they cannot listen or
  accept.
- There is no ready-made TLS client or server. `vio.tls_common` builds the
  `ssl.SSLContext` and wraps an already-created `SSLSocket`. Wrapping the
  socket, the handshake and server-name handling are left to the caller.
- There are no file-system operations.
- There is no event loop of its own; everything uses asyncio's.

## Tests

```
pip install .[test]
pytest
```