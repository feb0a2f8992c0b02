"""Asyncio building blocks: timers, DNS lookup, TCP sockets, readiness-driven and TLS streams, and small containers."""

__version__ = "0.1.0"

__all__ = [
    "bit_mask",
    "dns",
    "elastic_index_storage",
    "event_pipe",
    "sleep",
    "socket_stream",
    "tcp",
    "tls_common",
]