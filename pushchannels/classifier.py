"""Response classifier: RawResult -> Outcome (status and, for audit, result)."""
from __future__ import annotations

import json
from typing import Any

from pushchannels.models import (
    AcknowledgmentStatus,
    AuditResult,
    ErrorStatus,
    Operation,
    Outcome,
    RequestDescriptor,
    StatusCategory,
)
from pushchannels.transport.base import RawResult

ACCESS_DENIED_CODES = frozenset({401, 403})
# Same request would fail the same way; not worth reissuing.
PERMANENT_CODES = frozenset({400, 404, 405, 413, 414})

_NOT_PARSED = object()


def _error(
    request: RequestDescriptor,
    category: StatusCategory,
    message: str,
    status_code: int | None = None,
    retryable: bool = False,
) -> Outcome:
    return Outcome(
        status=ErrorStatus(
            operation=request.operation,
            category=category,
            message=message,
            status_code=status_code,
            retryable=retryable,
            request=request if retryable else None,
        )
    )


def _parse_body(body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return _NOT_PARSED


def _service_error(request: RequestDescriptor, code: int | None, message: str) -> Outcome:
    if code in ACCESS_DENIED_CODES:
        return _error(request, StatusCategory.ACCESS_DENIED, message, code)
    if code in PERMANENT_CODES:
        return _error(request, StatusCategory.SERVER, message, code)
    return _error(request, StatusCategory.SERVER, message, code, retryable=True)


def _error_payload(data: Any, http_status: int | None) -> tuple[int | None, str] | None:
    """(code, message) if the response reports a service error, else None."""
    if isinstance(data, dict):
        code = data.get("status")
        if not isinstance(code, int):
            code = http_status
        if data.get("error") is True or (code is not None and code >= 400):
            message = str(data.get("message") or data.get("error_message") or "service error")
            return code, message
    if http_status is not None and http_status >= 400:
        return http_status, f"HTTP {http_status}"
    return None


def classify(request: RequestDescriptor, raw: RawResult) -> Outcome:
    """Turn one transport result into the terminal outcome for that attempt."""
    if raw.cancelled:
        return _error(request, StatusCategory.CANCELLED, raw.error or "request cancelled")
    if raw.failure is not None:
        return _error(
            request,
            StatusCategory.NETWORK,
            f"{raw.failure}: {raw.error}" if raw.error else raw.failure,
            retryable=True,
        )

    data = _parse_body(raw.body)
    if data is _NOT_PARSED:
        if raw.status_code is not None and raw.status_code >= 400:
            return _service_error(request, raw.status_code, f"HTTP {raw.status_code}")
        return _error(
            request,
            StatusCategory.MALFORMED_RESPONSE,
            "response body is not JSON",
            raw.status_code,
        )

    reported = _error_payload(data, raw.status_code)
    if reported is not None:
        return _service_error(request, *reported)

    if request.operation is Operation.AUDIT:
        return _classify_audit(request, data, raw.status_code)
    return _classify_modification(request, data, raw.status_code)


def _classify_modification(request: RequestDescriptor, data: Any, status_code: int | None) -> Outcome:
    # expected: [1, "Modified Channels"]
    if not isinstance(data, list) or not data or data[0] not in (0, 1) or isinstance(data[0], bool):
        return _error(
            request,
            StatusCategory.MALFORMED_RESPONSE,
            "unexpected modification response shape",
            status_code,
        )
    if data[0] == 0:
        message = str(data[1]) if len(data) > 1 else "service rejected the request"
        return _error(request, StatusCategory.SERVER, message, status_code, retryable=True)
    return Outcome(status=AcknowledgmentStatus(operation=request.operation, status_code=status_code))


def _classify_audit(request: RequestDescriptor, data: Any, status_code: int | None) -> Outcome:
    if not isinstance(data, list) or not all(isinstance(name, str) for name in data):
        return _error(
            request,
            StatusCategory.MALFORMED_RESPONSE,
            "unexpected audit response shape",
            status_code,
        )
    channels = tuple(dict.fromkeys(data))
    return Outcome(
        status=ErrorStatus(
            operation=request.operation,
            category=StatusCategory.ACKNOWLEDGMENT,
            status_code=status_code,
        ),
        result=AuditResult(channels=channels),
    )
