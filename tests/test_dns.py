import socket

import pytest

from vio.dns import AddressInfo, DnsError, NameInfo, get_addrinfo, get_nameinfo


@pytest.mark.asyncio
async def test_lookup_localhost():
    hints = AddressInfo(family=socket.AF_UNSPEC, socktype=socket.SOCK_STREAM)
    result = await get_addrinfo("localhost", hints)
    assert len(result) > 0
    first = result[0]
    assert first.family in (socket.AF_INET, socket.AF_INET6)
    assert first.socktype == socket.SOCK_STREAM
    assert first.sockaddr() is not None
    for info in result:
        name_info = await get_nameinfo(info)
        assert isinstance(name_info, NameInfo)
        assert name_info.host == info.sockaddr()[0].split("%")[0] or name_info.host


@pytest.mark.asyncio
async def test_lookup_invalid_hostname():
    hints = AddressInfo(family=socket.AF_UNSPEC)
    with pytest.raises(DnsError) as info:
        await get_addrinfo("invalid.hostname.that.does.not.exist", hints)
    assert info.value.code != 0
    assert info.value.msg


@pytest.mark.asyncio
async def test_lookup_ipv4_only():
    hints = AddressInfo(family=socket.AF_INET, socktype=socket.SOCK_STREAM)
    result = await get_addrinfo("localhost", hints)
    assert result
    for info in result:
        assert info.family == socket.AF_INET


@pytest.mark.asyncio
async def test_numeric_round_trip():
    hints = AddressInfo(family=socket.AF_INET, socktype=socket.SOCK_STREAM)
    result = await get_addrinfo("127.0.0.1", hints)
    assert [info.sockaddr()[0] for info in result] == ["127.0.0.1"]
    name_info = await get_nameinfo(result[0])
    assert name_info == NameInfo(host="127.0.0.1", service="0")


@pytest.mark.asyncio
async def test_nameinfo_without_address_fails():
    with pytest.raises(DnsError) as info:
        await get_nameinfo(AddressInfo())
    assert info.value.code != 0


def test_default_address_info_has_no_sockaddr():
    info = AddressInfo()
    assert info.sockaddr() is None
    assert (info.flags, info.family, info.socktype, info.protocol) == (0, 0, 0, 0)