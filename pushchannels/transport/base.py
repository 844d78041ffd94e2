"""Transport abstraction: execute(request, cancel_token) -> RawResult."""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal

from pushchannels.models import RequestDescriptor

FailureKind = Literal["timeout", "connection", "tls", "transport"]


class CancellationToken:
    """Set once by whoever wants the in-flight call abandoned."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to timeout; True if cancelled meanwhile."""
        return self._event.wait(timeout)


@dataclass(frozen=True)
class RawResult:
    """What came back from the wire, before classification."""

    status_code: int | None = None
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    failure: FailureKind | None = None
    error: str = ""
    cancelled: bool = False

    @classmethod
    def success(cls, status_code: int, body: bytes, headers: dict[str, str] | None = None) -> RawResult:
        return cls(status_code=status_code, body=body, headers=dict(headers or {}))

    @classmethod
    def transport_failure(cls, kind: FailureKind, error: str = "") -> RawResult:
        return cls(failure=kind, error=error)

    @classmethod
    def cancellation(cls) -> RawResult:
        return cls(cancelled=True, error="request cancelled")


class Transport(ABC):
    """Abstract transport: one RawResult per execute() call, never an exception."""

    @abstractmethod
    def execute(self, request: RequestDescriptor, cancel_token: CancellationToken) -> RawResult:
        """Perform the network exchange for request."""
        ...

    def close(self) -> None:
        """Release pooled connections, if any."""
