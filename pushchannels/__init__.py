"""Push channel registration client: enable, disable and audit push delivery per device token."""
from __future__ import annotations

__version__ = "0.1.0"

from pushchannels.client import PushClient
from pushchannels.config import ClientConfig
from pushchannels.dispatcher import CallHandle, CallState, Dispatcher
from pushchannels.models import (
    AcknowledgmentStatus,
    AuditResult,
    ConfigError,
    ErrorStatus,
    Operation,
    PushChannelsError,
    RequestDescriptor,
    StatusCategory,
    ValidationError,
)

__all__ = [
    "AcknowledgmentStatus",
    "AuditResult",
    "CallHandle",
    "CallState",
    "ClientConfig",
    "ConfigError",
    "Dispatcher",
    "ErrorStatus",
    "Operation",
    "PushChannelsError",
    "PushClient",
    "RequestDescriptor",
    "StatusCategory",
    "ValidationError",
    "__version__",
]
