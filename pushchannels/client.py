"""PushClient: enable, disable, disable-all and audit push channels for a device token."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Callable

from pushchannels.builder import RequestBuilder
from pushchannels.config import ClientConfig, load_config, validate_config
from pushchannels.dispatcher import CallHandle, CompletionExecutor, Dispatcher
from pushchannels.models import (
    AuditCompletion,
    ErrorStatus,
    Operation,
    StateCompletion,
    Status,
    StatusCategory,
    ValidationError,
)
from pushchannels.transport import Transport, get_transport
from pushchannels.validation import validate

logger = logging.getLogger(__name__)


class PushClient:
    """Entry point for the four push-provisioning calls.

    None of the operations raise for runtime failures: the completion always
    receives exactly one status per attempt, an ErrorStatus when anything went
    wrong (including bad input, which never reaches the transport).
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport | None = None,
        completion_executor: CompletionExecutor | None = None,
    ) -> None:
        self.config = config
        self.builder = RequestBuilder(
            subscribe_key=config.subscribe_key,
            uuid=config.uuid,
            auth_key=config.auth_key,
            push_type=config.push_type,
        )
        if transport is None:
            transport_cls = get_transport(config.transport_type)
            transport = transport_cls(origin=config.origin, ssl=config.ssl, timeout=config.timeout)
        self.transport = transport
        self.dispatcher = Dispatcher(
            transport,
            max_workers=config.max_workers,
            auto_retries=config.auto_retries,
            retry_delay=config.retry_delay,
            completion_executor=completion_executor,
        )

    @classmethod
    def from_config_file(cls, path: str | Path, **kwargs: Any) -> PushClient:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"config not found: {path}")
        config = load_config(path)
        validate_config(config)
        return cls(ClientConfig.from_dict(config), **kwargs)

    def enable_push(
        self,
        channels: Iterable[str],
        token: bytes,
        completion: StateCompletion,
    ) -> CallHandle:
        """Enable push delivery on channels for the device token."""
        return self._call(Operation.ENABLE, token, channels, completion)

    def disable_push(
        self,
        channels: Iterable[str],
        token: bytes,
        completion: StateCompletion,
    ) -> CallHandle:
        """Disable push delivery on channels for the device token."""
        return self._call(Operation.DISABLE, token, channels, completion)

    def disable_all_push(
        self,
        token: bytes,
        completion: StateCompletion,
        channels: Iterable[str] | None = None,
    ) -> CallHandle:
        """Disable push delivery on every channel registered with the token.

        channels is accepted and ignored.
        """
        return self._call(Operation.DISABLE_ALL, token, channels, completion)

    def audit_push(
        self,
        token: bytes,
        completion: AuditCompletion,
        channels: Iterable[str] | None = None,
    ) -> CallHandle:
        """List channels with push enabled; completion gets (result, status)."""
        return self._call(Operation.AUDIT, token, channels, completion)

    def retry(self, status: Status) -> CallHandle | None:
        """Reissue the call behind a retry-eligible status; None if not eligible or stale."""
        return status.retry()

    def close(self) -> None:
        self.dispatcher.shutdown(wait=True)
        self.transport.close()

    def __enter__(self) -> PushClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(
        self,
        operation: Operation,
        token: Any,
        channels: Iterable[str] | None,
        completion: Callable[..., Any],
    ) -> CallHandle:
        try:
            token, names = validate(operation, token, channels)
        except ValidationError as e:
            logger.warning("push %s rejected: %s", operation.value, e)
            status = ErrorStatus(operation=operation, category=StatusCategory.VALIDATION, message=str(e))
            return self.dispatcher.deliver(operation, status, completion)
        request = self.builder.build(operation, token, names)
        return self.dispatcher.dispatch(request, completion)
