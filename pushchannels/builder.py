"""Request builder: operation + validated input -> RequestDescriptor."""
from __future__ import annotations

import uuid as uuid_mod
from collections.abc import Iterable
from urllib.parse import quote

from pushchannels.models import Operation, RequestDescriptor
from pushchannels.validation import token_to_hex

PUSH_TYPES = ("apns", "gcm", "mpns")

DEVICES_PATH = "/v1/push/sub-key/{sub_key}/devices/{token}"


def encode_channels(channels: Iterable[str]) -> str:
    """Percent-encode each name, then join with ',' (so 'a,b' stays one channel)."""
    return ",".join(quote(name, safe="") for name in channels)


class RequestBuilder:
    """Maps the four push operations onto the service's device endpoints.

    Every query value is percent-encoded here; the transport sends
    RequestDescriptor.query_string() as-is.
    """

    def __init__(
        self,
        subscribe_key: str,
        uuid: str | None = None,
        auth_key: str | None = None,
        push_type: str = "apns",
    ) -> None:
        if not subscribe_key:
            raise ValueError("subscribe_key is required")
        if push_type not in PUSH_TYPES:
            raise ValueError(f"Unknown push type: {push_type}")
        self.subscribe_key = subscribe_key
        self.uuid = uuid
        self.auth_key = auth_key
        self.push_type = push_type

    def build(
        self,
        operation: Operation,
        token: bytes,
        channels: tuple[str, ...] | None = None,
    ) -> RequestDescriptor:
        path = DEVICES_PATH.format(
            sub_key=quote(self.subscribe_key, safe=""),
            token=token_to_hex(token),
        )
        params: list[tuple[str, str]] = []

        if operation is Operation.ENABLE:
            params.append(("add", encode_channels(channels or ())))
        elif operation is Operation.DISABLE:
            params.append(("remove", encode_channels(channels or ())))
        elif operation is Operation.DISABLE_ALL:
            path += "/remove"
            channels = None
        elif operation is Operation.AUDIT:
            channels = None
        else:
            raise ValueError(f"Unknown operation: {operation}")

        params.append(("type", self.push_type))
        if self.uuid:
            params.append(("uuid", quote(self.uuid, safe="")))
        if self.auth_key:
            params.append(("auth", quote(self.auth_key, safe="")))

        return RequestDescriptor(
            operation=operation,
            token=token,
            channels=channels,
            path=path,
            params=tuple(params),
            push_type=self.push_type,
            request_id=uuid_mod.uuid4().hex,
        )
