"""
USB Watch Command Line Interface.

Provides commands for:
- monitor: Watch USB connections in the foreground
- classify: Decode and classify a captured or hand-written uevent
- port-id: Extract the USB port address from a device path
- config: Show and validate the effective configuration
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from usbwatch import __version__
from usbwatch.config import load_config, validate_config
from usbwatch.monitor.classifier import Rejected, classify, get_port_id
from usbwatch.monitor.events import Notification, NotificationType
from usbwatch.monitor.uevent import decode, encode


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="usb-watch",
        description="USB hotplug monitor",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # monitor command
    monitor_parser = subparsers.add_parser("monitor", help="Watch USB connections")
    monitor_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Also show monitor log messages",
    )
    monitor_parser.set_defaults(func=cmd_monitor)

    # classify command
    classify_parser = subparsers.add_parser(
        "classify", help="Decode and classify a uevent"
    )
    classify_parser.add_argument(
        "-f", "--file",
        help="Raw uevent payload file (NUL-separated)",
    )
    classify_parser.add_argument(
        "fields",
        nargs="*",
        metavar="KEY=VALUE",
        help="uevent fields, used when no file is given",
    )
    classify_parser.set_defaults(func=cmd_classify)

    # port-id command
    port_parser = subparsers.add_parser("port-id", help="Extract USB port id")
    port_parser.add_argument("devpath", help="Kernel device path")
    port_parser.set_defaults(func=cmd_port_id)

    # config command
    config_parser = subparsers.add_parser("config", help="Show effective configuration")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


def output(data: Any, args: argparse.Namespace) -> None:
    """Output data in requested format."""
    if getattr(args, "json", False):
        print(json.dumps(data, indent=2, default=str))
    elif isinstance(data, dict):
        for key, value in data.items():
            print(f"{key}: {value}")
    else:
        print(data)


def cmd_monitor(args: argparse.Namespace) -> int:
    """Watch USB connections until interrupted."""
    from usbwatch.daemon import run_daemon

    try:
        config = load_config(args.config)
    except (FileNotFoundError, yaml.YAMLError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    errors = validate_config(config)
    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    def show(notification: Notification) -> None:
        if args.json:
            print(json.dumps(notification.to_dict()), flush=True)
        elif notification.type == NotificationType.CONNECTED:
            print(f"+ {notification.label}", flush=True)
        elif notification.type == NotificationType.DISCONNECTED:
            print(f"- {notification.label}", flush=True)
        elif notification.type == NotificationType.LOG and args.verbose:
            print(notification.message, flush=True)

    return run_daemon(config, on_notification=show)


def cmd_classify(args: argparse.Namespace) -> int:
    """Decode and classify a uevent."""
    if args.file:
        try:
            payload = Path(args.file).read_bytes()
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        fields = {}
        for item in args.fields:
            key, sep, value = item.partition("=")
            if not sep:
                print(f"Error: expected KEY=VALUE, got {item!r}", file=sys.stderr)
                return 1
            fields[key] = value
        payload = encode(fields)

    record = decode(payload)
    result = classify(record)

    data: dict[str, Any] = {"fields": record.as_dict()}
    if isinstance(result, Rejected):
        data["accepted"] = False
        data["reason"] = result.reason.value
    else:
        data["accepted"] = True
        data["action"] = result.action.value
        data["subsystem"] = result.subsystem
        data["key"] = result.key
        data["port_id"] = get_port_id(result.key)

    output(data, args)
    return 0 if data["accepted"] else 2


def cmd_port_id(args: argparse.Namespace) -> int:
    """Print the USB port id of a device path."""
    port_id = get_port_id(args.devpath)
    if port_id is None:
        print(f"No port id in {args.devpath}", file=sys.stderr)
        return 1
    output({"devpath": args.devpath, "port_id": port_id} if args.json else port_id, args)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show effective configuration and validation errors."""
    try:
        config = load_config(args.config)
    except (FileNotFoundError, yaml.YAMLError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    errors = validate_config(config)
    if args.json:
        output({"config": config.to_dict(), "errors": errors}, args)
    else:
        print(yaml.safe_dump(config.to_dict(), default_flow_style=False), end="")
        if errors:
            print("Configuration errors:")
            for error in errors:
                print(f"  - {error}")

    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
