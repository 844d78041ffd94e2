"""CLI entry: pushchannels {enable,disable,disable-all,audit} --token HEX [--channel NAME ...] [--config path]."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from pushchannels.client import PushClient
from pushchannels.dispatcher import CallHandle
from pushchannels.models import AuditResult, ConfigError, ErrorStatus, Status, ValidationError
from pushchannels.validation import token_from_hex

load_dotenv()

DEFAULT_CONFIG = "config/config.yaml"
DEFAULT_WAIT = 30.0
LOG_DIR = Path("logs")


def _setup_logging(verbose: bool = False) -> None:
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / "pushchannels.log"
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    formatter = logging.Formatter(fmt)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not root.handlers:
        h_stderr = logging.StreamHandler(sys.stderr)
        h_stderr.setFormatter(formatter)
        root.addHandler(h_stderr)
        h_file = logging.FileHandler(log_file, encoding="utf-8")
        h_file.setFormatter(formatter)
        root.addHandler(h_file)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage push notification channels for a device token")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Config file path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_WAIT,
        help=f"Seconds to wait for the service (default: {DEFAULT_WAIT:g})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)
    for name, needs_channels in (("enable", True), ("disable", True), ("disable-all", False), ("audit", False)):
        cmd = sub.add_parser(name)
        cmd.add_argument("--token", required=True, help="Device push token as hex")
        if needs_channels:
            cmd.add_argument(
                "--channel",
                dest="channels",
                action="append",
                required=True,
                help="Channel name (repeatable)",
            )
    return parser


def run_command(client: PushClient, args: argparse.Namespace) -> int:
    """Issue the requested call, wait for its completion, print the outcome."""
    delivered: list[tuple[AuditResult | None, Status]] = []

    def on_status(status: Status) -> None:
        delivered.append((None, status))

    def on_audit(result: AuditResult | None, status: ErrorStatus) -> None:
        delivered.append((result, status))

    token = token_from_hex(args.token)
    handle: CallHandle
    if args.command == "enable":
        handle = client.enable_push(args.channels, token, on_status)
    elif args.command == "disable":
        handle = client.disable_push(args.channels, token, on_status)
    elif args.command == "disable-all":
        handle = client.disable_all_push(token, on_status)
    else:
        handle = client.audit_push(token, on_audit)

    if not handle.wait(args.timeout):
        handle.cancel()
        handle.wait(1.0)
    if not delivered:
        logging.error("%s: no response within %ss", args.command, args.timeout)
        return 1

    result, status = delivered[0]
    if status.is_error:
        logging.error("%s failed: category=%s %s", args.command, status.category.value, getattr(status, "message", ""))
        return 1
    if result is not None:
        for channel in result.channels:
            print(channel)
    else:
        print("ok")
    return 0


def main() -> None:
    args = _build_parser().parse_args()
    _setup_logging(args.verbose)

    try:
        client = PushClient.from_config_file(args.config)
    except FileNotFoundError as e:
        logging.error("%s", e)
        sys.exit(1)
    except ConfigError as e:
        logging.error("%s", e)
        sys.exit(1)

    with client:
        try:
            code = run_command(client, args)
        except ValidationError as e:
            logging.error("%s", e)
            code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
