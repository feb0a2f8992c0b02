"""TLS configuration and a non-blocking TLS transport for SocketStream."""

from __future__ import annotations

import enum
import functools
import os
import socket
import ssl
import tempfile
from dataclasses import dataclass
from typing import Any, Protocol

from vio.socket_stream import StreamError, StreamIOResult


class TlsError(StreamError):
    """A TLS configuration or transport failure."""


class TlsProtocol(enum.IntFlag):
    """Protocol versions that SslConfig.protocols may combine."""

    TLSv1_0 = 1 << 1
    TLSv1_1 = 1 << 2
    TLSv1_2 = 1 << 3
    TLSv1_3 = 1 << 4
    DEFAULT = TLSv1_2 | TLSv1_3
    ALL = TLSv1_0 | TLSv1_1 | TLSv1_2 | TLSv1_3


_VERSIONS = (
    (TlsProtocol.TLSv1_0, ssl.TLSVersion.TLSv1),
    (TlsProtocol.TLSv1_1, ssl.TLSVersion.TLSv1_1),
    (TlsProtocol.TLSv1_2, ssl.TLSVersion.TLSv1_2),
    (TlsProtocol.TLSv1_3, ssl.TLSVersion.TLSv1_3),
)


@dataclass
class SslConfig:
    """Settings for a TLS client or server; unset fields keep the defaults.

    dheparams, ecdhecurve and verify_depth are accepted but have no effect.
    """

    ca_mem: bytes | None = None
    ca_file: str | None = None
    ca_path: str | None = None
    cert_mem: bytes | None = None
    key_mem: bytes | None = None
    cert_file: str | None = None
    key_file: str | None = None
    ocsp_staple_mem: bytes | None = None
    ocsp_staple_file: str | None = None
    ciphers: str | None = None
    alpn: str | None = None
    protocols: int | None = None
    dheparams: str | None = None
    ecdhecurve: str | None = None
    verify_client: bool = False
    verify_depth: int | None = None
    verify_optional: bool = False


def _tls_error(exc: BaseException) -> TlsError:
    code = getattr(exc, "errno", None)
    if not isinstance(code, int):
        code = -1
    msg = getattr(exc, "strerror", None) or str(exc) or type(exc).__name__
    return TlsError(code, msg)


@functools.lru_cache(maxsize=None)
def get_default_ca_certificates() -> str:
    """Return the system's trusted root certificates as concatenated PEM text."""
    cafile = ssl.get_default_verify_paths().cafile
    if cafile and os.path.isfile(cafile):
        try:
            with open(cafile, encoding="ascii", errors="replace") as handle:
                text = handle.read()
        except OSError:
            text = ""
        if text:
            return text
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_default_certs()
    except (OSError, ssl.SSLError):
        return ""
    return "".join(ssl.DER_cert_to_PEM_cert(der) for der in context.get_ca_certs(binary_form=True))


def _cadata(data: bytes | str) -> bytes | str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("ascii")
    except UnicodeDecodeError:
        return data


def _load_cert_chain_mem(context: ssl.SSLContext, cert: bytes, key: bytes) -> None:
    with tempfile.TemporaryDirectory() as directory:
        cert_path = os.path.join(directory, "cert.pem")
        key_path = os.path.join(directory, "key.pem")
        with open(cert_path, "wb") as handle:
            handle.write(cert)
        with open(key_path, "wb") as handle:
            handle.write(key)
        context.load_cert_chain(cert_path, key_path)


def _apply_protocols(context: ssl.SSLContext, protocols: int) -> None:
    chosen = [version for flag, version in _VERSIONS if protocols & flag]
    if not chosen:
        raise TlsError(-1, "no TLS protocol versions selected")
    context.minimum_version = chosen[0]
    context.maximum_version = chosen[-1]


def create_tls_config(
    config: SslConfig,
    default_ca_certificates: str = "",
    server_side: bool = False,
) -> ssl.SSLContext:
    """Build an SSL context from config, raising TlsError on any bad setting."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER if server_side else ssl.PROTOCOL_TLS_CLIENT)
    try:
        if config.ca_mem:
            context.load_verify_locations(cadata=_cadata(config.ca_mem))
        elif config.ca_file or config.ca_path:
            context.load_verify_locations(cafile=config.ca_file, capath=config.ca_path)
        elif default_ca_certificates:
            context.load_verify_locations(cadata=default_ca_certificates)

        if config.cert_mem and config.key_mem:
            _load_cert_chain_mem(context, config.cert_mem, config.key_mem)
        elif config.cert_file and config.key_file:
            context.load_cert_chain(config.cert_file, config.key_file)

        if config.ocsp_staple_mem or config.ocsp_staple_file:
            raise TlsError(-1, "OCSP stapling is not supported")

        if config.ciphers:
            context.set_ciphers(config.ciphers)

        if config.alpn:
            context.set_alpn_protocols([name.strip() for name in config.alpn.split(",") if name.strip()])

        if config.protocols is not None:
            _apply_protocols(context, int(config.protocols))
    except TlsError:
        raise
    except (OSError, ValueError, NotImplementedError) as exc:
        raise _tls_error(exc) from exc

    if server_side:
        if config.verify_client:
            context.verify_mode = ssl.CERT_REQUIRED
        elif config.verify_optional:
            context.verify_mode = ssl.CERT_OPTIONAL
    return context


class _TlsSocket(Protocol):
    def recv(self, size: int) -> bytes: ...

    def send(self, data: Any) -> int: ...

    def close(self) -> None: ...


class TlsStream:
    """Native stream over a non-blocking TLS socket, reporting what it waits for."""

    def __init__(self, ssl_object: _TlsSocket, sock: socket.socket | _TlsSocket) -> None:
        self.ssl_object = ssl_object
        self.sock = sock

    def read(self, size: int) -> tuple[StreamIOResult, bytes]:
        try:
            data = self.ssl_object.recv(size)
        except ssl.SSLWantReadError:
            return StreamIOResult.POLL_IN, b""
        except ssl.SSLWantWriteError:
            return StreamIOResult.POLL_OUT, b""
        except ssl.SSLZeroReturnError:
            return StreamIOResult.OK, b""
        except BlockingIOError:
            return StreamIOResult.POLL_IN, b""
        except OSError as exc:
            raise _tls_error(exc) from exc
        return StreamIOResult.OK, data

    def write(self, data: bytes | bytearray | memoryview) -> tuple[StreamIOResult, int]:
        try:
            written = self.ssl_object.send(data)
        except ssl.SSLWantReadError:
            return StreamIOResult.POLL_IN, 0
        except ssl.SSLWantWriteError:
            return StreamIOResult.POLL_OUT, 0
        except BlockingIOError:
            return StreamIOResult.POLL_OUT, 0
        except OSError as exc:
            raise _tls_error(exc) from exc
        return StreamIOResult.OK, written

    def close(self) -> None:
        self.ssl_object.close()
        if self.sock is not self.ssl_object:
            self.sock.close()