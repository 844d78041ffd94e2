"""Core data models: operations, request descriptors, statuses, audit results."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:
    from pushchannels.dispatcher import CallHandle, RetryTicket

logger = logging.getLogger(__name__)


class PushChannelsError(Exception):
    """Base error for the push channels client."""


class ValidationError(PushChannelsError):
    """Caller input rejected before any request was built."""


class ConfigError(PushChannelsError, ValueError):
    """Configuration file missing required values or carrying bad ones."""


class Operation(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"
    DISABLE_ALL = "disable-all"
    AUDIT = "audit"

    @property
    def takes_channels(self) -> bool:
        return self in (Operation.ENABLE, Operation.DISABLE)


class StatusCategory(str, Enum):
    ACKNOWLEDGMENT = "acknowledgment"
    VALIDATION = "validation"
    NETWORK = "network"
    SERVER = "server"
    ACCESS_DENIED = "access-denied"
    MALFORMED_RESPONSE = "malformed-response"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RequestDescriptor:
    """Immutable snapshot of one logical call; reused unchanged by retries."""

    operation: Operation
    token: bytes
    channels: tuple[str, ...] | None
    path: str
    params: tuple[tuple[str, str], ...]
    push_type: str
    request_id: str
    retry_safe: bool = True

    def query_string(self) -> str:
        """Already-encoded query, ready to append after '?'."""
        return "&".join(f"{key}={value}" for key, value in self.params)


@dataclass(frozen=True)
class AcknowledgmentStatus:
    """Terminal success marker for enable/disable/disable-all."""

    operation: Operation
    category: StatusCategory = StatusCategory.ACKNOWLEDGMENT
    status_code: int | None = None

    @property
    def is_error(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        return False

    def retry(self) -> CallHandle | None:
        logger.info("retry ignored: %s acknowledgment is not retry-eligible", self.operation.value)
        return None


@dataclass(frozen=True)
class ErrorStatus:
    """Failure status; for audit calls also the non-error companion of a result.

    When ``retryable`` is true and the status came out of a dispatcher, it
    holds a single-use retry ticket. ``retry()`` on anything else, or on a
    status whose ticket was already used, does nothing and returns None.
    """

    operation: Operation
    category: StatusCategory
    message: str = ""
    status_code: int | None = None
    retryable: bool = False
    request: RequestDescriptor | None = None
    attempt: int = 1
    _ticket: RetryTicket | None = field(default=None, repr=False, compare=False)

    @property
    def is_error(self) -> bool:
        return self.category is not StatusCategory.ACKNOWLEDGMENT

    @property
    def is_stale(self) -> bool:
        return self._ticket is not None and self._ticket.used

    def retry(self) -> CallHandle | None:
        if not self.retryable or self._ticket is None:
            logger.info(
                "retry ignored: %s status category=%s is not retry-eligible",
                self.operation.value,
                self.category.value,
            )
            return None
        return self._ticket.redeem()


Status = Union[AcknowledgmentStatus, ErrorStatus]


@dataclass(frozen=True)
class AuditResult:
    """Channels that currently have push delivery enabled for a token."""

    channels: tuple[str, ...]

    def channel_set(self) -> frozenset[str]:
        return frozenset(self.channels)


@dataclass(frozen=True)
class Outcome:
    """Classified result of one attempt: status plus audit payload when present."""

    status: Status
    result: AuditResult | None = None


StateCompletion = Callable[[Status], Any]
AuditCompletion = Callable[[Union[AuditResult, None], ErrorStatus], Any]
