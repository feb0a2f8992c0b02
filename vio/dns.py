"""Asynchronous host name resolution and reverse lookup."""

from __future__ import annotations

import asyncio
import errno
import socket
from dataclasses import dataclass
from typing import Any


class DnsError(Exception):
    """A failed name lookup, with the resolver's code and message."""

    def __init__(self, code: int, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass
class AddressInfo:
    """One resolved address, also used as the hints for a lookup."""

    flags: int = 0
    family: int = 0
    socktype: int = 0
    protocol: int = 0
    canonname: str = ""
    addr: tuple[Any, ...] | None = None

    def sockaddr(self) -> tuple[Any, ...] | None:
        """Return the socket address, or None when there is none."""
        return self.addr if self.addr else None


@dataclass(frozen=True)
class NameInfo:
    host: str
    service: str


def _to_dns_error(exc: OSError) -> DnsError:
    code = exc.errno if exc.errno is not None else -1
    msg = exc.strerror if exc.strerror else str(exc)
    return DnsError(code, msg)


async def get_addrinfo(host: str, hints: AddressInfo | None = None) -> list[AddressInfo]:
    """Resolve host to the list of addresses matching hints."""
    hints = hints if hints is not None else AddressInfo()
    loop = asyncio.get_running_loop()
    try:
        results = await loop.getaddrinfo(
            host,
            None,
            family=hints.family,
            type=hints.socktype,
            proto=hints.protocol,
            flags=hints.flags,
        )
    except OSError as exc:
        raise _to_dns_error(exc) from exc
    return [
        AddressInfo(
            flags=hints.flags,
            family=family,
            socktype=socktype,
            protocol=protocol,
            canonname=canonname or "",
            addr=sockaddr,
        )
        for family, socktype, protocol, canonname, sockaddr in results
    ]


async def get_nameinfo(
    addr: AddressInfo,
    flags: int = socket.NI_NUMERICHOST | socket.NI_NUMERICSERV,
) -> NameInfo:
    """Look up the host and service names for a resolved address."""
    sockaddr = addr.sockaddr()
    if sockaddr is None:
        raise DnsError(errno.EINVAL, "invalid argument")
    loop = asyncio.get_running_loop()
    try:
        host, service = await loop.getnameinfo(sockaddr, flags)
    except OSError as exc:
        raise _to_dns_error(exc) from exc
    return NameInfo(host=host, service=service)