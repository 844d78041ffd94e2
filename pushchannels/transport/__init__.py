"""Transport layer: base + HTTP; factory by type."""
from __future__ import annotations

from pushchannels.transport.base import CancellationToken, RawResult, Transport
from pushchannels.transport.http import HttpTransport

_TRANSPORTS: dict[str, type[Transport]] = {
    "http": HttpTransport,
}


def get_transport(transport_type: str) -> type[Transport]:
    """Return transport class for given type (only 'http' for now)."""
    if transport_type not in _TRANSPORTS:
        raise ValueError(f"Unknown transport type: {transport_type}")
    return _TRANSPORTS[transport_type]


__all__ = ["CancellationToken", "HttpTransport", "RawResult", "Transport", "get_transport"]
