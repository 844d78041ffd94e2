"""Config loading: YAML file with ${ENV_VAR} placeholders -> ClientConfig."""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from pushchannels.builder import PUSH_TYPES
from pushchannels.models import ConfigError
from pushchannels.transport import get_transport
from pushchannels.transport.http import DEFAULT_ORIGIN

# Match ${VAR_NAME} in config strings
ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def resolve_env(raw: Any) -> Any:
    """Replace ${ENV_VAR} in strings (recursively) with os.environ values."""
    if isinstance(raw, dict):
        return {k: resolve_env(v) for k, v in raw.items()}
    if isinstance(raw, list):
        return [resolve_env(v) for v in raw]
    if not isinstance(raw, str):
        return raw

    def repl(match: re.Match[str]) -> str:
        return os.environ.get(match.group(1), "")

    return ENV_PLACEHOLDER_RE.sub(repl, raw)


def load_config(path: str | Path) -> dict:
    """Load YAML config from path and resolve env placeholders."""
    with open(path, encoding="utf-8") as f:
        return resolve_env(yaml.safe_load(f) or {})


def _section(config: dict, name: str) -> dict:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"config: {name} must be a dict")
    return value


def _check_number(section: dict, section_name: str, key: str, kind: type) -> None:
    if key not in section:
        return
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, (int, float) if kind is float else int):
        raise ConfigError(f"config: {section_name}.{key} must be a {kind.__name__}")
    if value < 0:
        raise ConfigError(f"config: {section_name}.{key} must not be negative")


def validate_config(config: dict) -> None:
    """Validate client, push, transport and dispatch sections; raise ConfigError."""
    if not isinstance(config, dict):
        raise ConfigError("config: top level must be a dict")
    client = _section(config, "client")
    push = _section(config, "push")
    transport = _section(config, "transport")
    dispatch = _section(config, "dispatch")

    if not client.get("subscribe_key"):
        raise ConfigError("config: client.subscribe_key is empty (env var not set?)")

    push_type = push.get("type", "apns")
    if push_type not in PUSH_TYPES:
        raise ConfigError(f"config: push.type '{push_type}' not one of {', '.join(PUSH_TYPES)}")

    try:
        get_transport(transport.get("type", "http"))
    except ValueError as e:
        raise ConfigError(f"config: {e}") from e
    _check_number(transport, "transport", "timeout", float)
    if "ssl" in transport and not isinstance(transport["ssl"], bool):
        raise ConfigError("config: transport.ssl must be a bool")

    _check_number(dispatch, "dispatch", "max_workers", int)
    if dispatch.get("max_workers") == 0:
        raise ConfigError("config: dispatch.max_workers must be at least 1")
    _check_number(dispatch, "dispatch", "auto_retries", int)
    _check_number(dispatch, "dispatch", "retry_delay", float)


@dataclass(frozen=True)
class ClientConfig:
    subscribe_key: str
    uuid: str | None = None
    auth_key: str | None = None
    push_type: str = "apns"
    transport_type: str = "http"
    origin: str = DEFAULT_ORIGIN
    ssl: bool = True
    timeout: float = 10
    max_workers: int = 4
    auto_retries: int = 0
    retry_delay: float = 1.0

    @classmethod
    def from_dict(cls, config: dict) -> ClientConfig:
        """Build from a validated config dict; missing keys fall back to defaults."""
        client = config.get("client") or {}
        push = config.get("push") or {}
        transport = config.get("transport") or {}
        dispatch = config.get("dispatch") or {}
        return cls(
            subscribe_key=client["subscribe_key"],
            uuid=client.get("uuid") or None,
            auth_key=client.get("auth_key") or None,
            push_type=push.get("type", cls.push_type),
            transport_type=transport.get("type", cls.transport_type),
            origin=transport.get("origin") or cls.origin,
            ssl=transport.get("ssl", cls.ssl),
            timeout=transport.get("timeout", cls.timeout),
            max_workers=dispatch.get("max_workers", cls.max_workers),
            auto_retries=dispatch.get("auto_retries", cls.auto_retries),
            retry_delay=dispatch.get("retry_delay", cls.retry_delay),
        )
