import asyncio
import socket

import pytest

from vio.tcp import (
    ECANCELED_CODE,
    EOF_CODE,
    Tcp,
    TcpError,
    ip4_addr,
    ip6_addr,
)


async def _start_server(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


async def _echo(reader, writer):
    try:
        while True:
            data = await reader.read(1024)
            if not data:
                break
            writer.write(data)
            await writer.drain()
    finally:
        writer.close()


async def _read_n(reader, n):
    received = b""
    while len(received) < n:
        received += await asyncio.wait_for(reader.read(), 5)
    return received


def test_ip4_addr_valid():
    assert ip4_addr("127.0.0.1", 80) == ("127.0.0.1", 80)


def test_ip4_addr_invalid():
    with pytest.raises(TcpError) as info:
        ip4_addr("not.an.ip", 0)
    assert info.value.code < 0


def test_ip4_addr_rejects_ipv6():
    with pytest.raises(TcpError):
        ip4_addr("::1", 80)


def test_ip6_addr_valid():
    assert ip6_addr("::1", 8080)[:2] == ("::1", 8080)


def test_ip6_addr_invalid():
    with pytest.raises(TcpError):
        ip6_addr("127.0.0.1", 80)


def test_sockname_before_connect_fails():
    with pytest.raises(TcpError):
        Tcp().sockname()


@pytest.mark.asyncio
async def test_write_and_read_echo():
    server, port = await _start_server(_echo)
    async with server:
        tcp = Tcp()
        try:
            await tcp.connect(ip4_addr("127.0.0.1", port))
            assert tcp.sockname()[0] == "127.0.0.1"
            reader = tcp.create_reader()
            await tcp.write(b"Hello TCP server")
            assert await _read_n(reader, 16) == b"Hello TCP server"
        finally:
            tcp.close()


@pytest.mark.asyncio
async def test_eof_reported_after_data():
    async def handler(reader, writer):
        writer.write(b"hello")
        await writer.drain()
        writer.close()

    server, port = await _start_server(handler)
    async with server:
        tcp = Tcp()
        try:
            await tcp.connect(ip4_addr("127.0.0.1", port))
            reader = tcp.create_reader()
            received = b""
            with pytest.raises(TcpError) as info:
                while True:
                    received += await asyncio.wait_for(reader.read(), 5)
            assert received == b"hello"
            assert info.value.code == EOF_CODE
        finally:
            tcp.close()


@pytest.mark.asyncio
async def test_async_iteration_stops_at_eof():
    async def handler(reader, writer):
        writer.write(b"abc")
        await writer.drain()
        writer.close()

    server, port = await _start_server(handler)
    async with server:
        tcp = Tcp()
        try:
            await tcp.connect(ip4_addr("127.0.0.1", port))
            chunks = [chunk async for chunk in tcp.create_reader()]
            assert b"".join(chunks) == b"abc"
        finally:
            tcp.close()


@pytest.mark.asyncio
async def test_cancel_reader():
    server, port = await _start_server(_echo)
    async with server:
        tcp = Tcp()
        try:
            await tcp.connect(ip4_addr("127.0.0.1", port))
            reader = tcp.create_reader()
            assert reader.is_cancelled() is False
            reader.cancel()
            reader.cancel()
            assert reader.is_cancelled() is True
            with pytest.raises(TcpError) as info:
                await asyncio.wait_for(reader.read(), 5)
            assert info.value.code == ECANCELED_CODE
            assert info.value.msg == "Operation was cancelled"
        finally:
            tcp.close()


@pytest.mark.asyncio
async def test_only_one_active_reader():
    server, port = await _start_server(_echo)
    async with server:
        tcp = Tcp()
        try:
            await tcp.connect(ip4_addr("127.0.0.1", port))
            first = tcp.create_reader()
            with pytest.raises(TcpError, match="multiple active readers"):
                tcp.create_reader()
            first.close()
            second = tcp.create_reader()
            await tcp.write(b"again")
            assert await _read_n(second, 5) == b"again"
        finally:
            tcp.close()


@pytest.mark.asyncio
async def test_closed_reader_read_fails():
    server, port = await _start_server(_echo)
    async with server:
        tcp = Tcp()
        try:
            await tcp.connect(ip4_addr("127.0.0.1", port))
            reader = tcp.create_reader()
            reader.close()
            with pytest.raises(TcpError, match="reader is closed"):
                await reader.read()
        finally:
            tcp.close()


@pytest.mark.asyncio
async def test_create_reader_after_close():
    tcp = Tcp()
    tcp.close()
    with pytest.raises(TcpError, match="closed socket"):
        tcp.create_reader()


@pytest.mark.asyncio
async def test_create_reader_unconnected():
    with pytest.raises(TcpError) as info:
        Tcp().create_reader()
    assert info.value.code < 0


@pytest.mark.asyncio
async def test_write_unconnected_fails():
    with pytest.raises(TcpError) as info:
        await Tcp().write(b"data")
    assert info.value.code < 0


@pytest.mark.asyncio
async def test_connect_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    tcp = Tcp()
    try:
        with pytest.raises(TcpError) as info:
            await asyncio.wait_for(tcp.connect(ip4_addr("127.0.0.1", port)), 5)
        assert info.value.code < 0
    finally:
        tcp.close()