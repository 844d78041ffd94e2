"""Device token and channel list validation."""
from __future__ import annotations

import binascii
from collections.abc import Iterable
from typing import Any

from pushchannels.models import Operation, ValidationError


def normalize_channels(channels: Iterable[Any]) -> tuple[str, ...]:
    """Trim names, drop empty ones, de-duplicate keeping first-seen order."""
    if isinstance(channels, (str, bytes)):
        raise ValidationError("channels must be a collection of names, not a single string")
    try:
        names = list(channels)
    except TypeError as e:
        raise ValidationError("channels must be a collection of names") from e
    seen: dict[str, None] = {}
    for name in names:
        if not isinstance(name, str):
            raise ValidationError(f"channel name must be a string, got {type(name).__name__}")
        name = name.strip()
        if name and name not in seen:
            seen[name] = None
    return tuple(seen)


def validate(
    operation: Operation,
    token: Any,
    channels: Iterable[str] | None = None,
) -> tuple[bytes, tuple[str, ...] | None]:
    """Return (token, channels) ready for the builder or raise ValidationError.

    Channels are ignored for disable-all and audit.
    """
    if not isinstance(token, (bytes, bytearray, memoryview)):
        raise ValidationError(f"device push token must be bytes, got {type(token).__name__}")
    token = bytes(token)
    if not token:
        raise ValidationError("device push token is empty")

    if not operation.takes_channels:
        return token, None

    if channels is None:
        raise ValidationError(f"{operation.value} requires at least one channel")
    names = normalize_channels(channels)
    if not names:
        raise ValidationError(f"{operation.value} requires at least one channel")
    return token, names


def token_from_hex(text: str) -> bytes:
    """Parse a hex device token (spaces and <> allowed, as printed by iOS)."""
    cleaned = "".join(text.split()).strip("<>")
    try:
        return binascii.unhexlify(cleaned)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"device push token is not valid hex: {e}") from e


def token_to_hex(token: bytes) -> str:
    return binascii.hexlify(token).decode("ascii")


def mask_token(token: bytes) -> str:
    """Short form for logs, never the full token."""
    hexed = token_to_hex(token)
    return f"{hexed[:6]}***" if len(hexed) > 6 else "***"
