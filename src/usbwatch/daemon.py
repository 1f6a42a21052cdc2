"""
USB Watch Daemon.

Foreground process that wires the monitor loop to the default labeler and
reports device connections until it receives SIGINT or SIGTERM.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from functools import partial
from typing import Callable

import yaml

from usbwatch import __version__
from usbwatch.config import WatchConfig, load_config, validate_config
from usbwatch.enrich.labels import DeviceLabeler
from usbwatch.monitor.channel import RawEventChannel
from usbwatch.monitor.events import Notification, NotificationType, QueueNotifier
from usbwatch.monitor.worker import MonitorLoop

logger = logging.getLogger("usbwatch")


class WatchDaemon:
    """
    Monitoring process.

    Runs the monitor loop on its worker thread and drains its notifications
    on the calling thread.
    """

    def __init__(self, config: WatchConfig, monitor: MonitorLoop | None = None) -> None:
        """
        Initialize daemon with configuration.

        Args:
            config: Validated configuration object
            monitor: Pre-built monitor loop (built from config by default);
                its notifier is replaced by the daemon's queue
        """
        self.config = config
        self._setup_logging()

        self.notifier = QueueNotifier()
        if monitor is None:
            monitor = self._build_monitor()
        else:
            monitor.notifier = self.notifier
        self.monitor = monitor
        self._stats = {
            "devices_connected": 0,
            "devices_disconnected": 0,
        }

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.daemon.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            filename=self.config.daemon.log_file,
        )

    def _build_monitor(self) -> MonitorLoop:
        channel = self.config.channel
        labeler = DeviceLabeler(
            unknown_label=self.config.enrichment.unknown_label,
            lookups_enabled=self.config.enrichment.enabled,
        )
        return MonitorLoop(
            notifier=self.notifier,
            labeler=labeler,
            channel_factory=partial(
                RawEventChannel,
                group=channel.group,
                buffer_size=channel.buffer_size,
            ),
            read_timeout=channel.read_timeout,
        )

    def run(self, on_notification: Callable[[Notification], None] | None = None) -> int:
        """
        Run until the monitor loop finishes.

        Args:
            on_notification: Called for every notification, in order

        Returns:
            Exit code: 0 after a requested stop, 1 if the loop failed.
        """
        logger.info("Starting USB Watch daemon v%s", __version__)
        self.monitor.start_monitoring()

        for notification in self.notifier.until_finished():
            if notification.type == NotificationType.CONNECTED:
                self._stats["devices_connected"] += 1
            elif notification.type == NotificationType.DISCONNECTED:
                self._stats["devices_disconnected"] += 1

            if on_notification is not None:
                on_notification(notification)

        self.monitor.wait()
        logger.info("Daemon stopped")
        return 1 if self.monitor.last_error else 0

    def handle_signal(self, signum: int, frame: object = None) -> None:
        """Handle termination signals."""
        sig_name = signal.Signals(signum).name
        logger.info("Received signal %s, initiating shutdown", sig_name)
        self.monitor.stop_monitoring()

    def install_signal_handlers(self) -> None:
        """Stop monitoring on SIGTERM and SIGINT."""
        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, self.handle_signal)

    def get_statistics(self) -> dict[str, object]:
        """Get daemon statistics."""
        return {
            **self._stats,
            "running": self.monitor.is_running,
            "devices_present": len(self.monitor.registry),
        }


def log_notification(notification: Notification) -> None:
    """Report a notification through the daemon logger."""
    if notification.type == NotificationType.CONNECTED:
        logger.info("Connected: %s", notification.label)
    elif notification.type == NotificationType.DISCONNECTED:
        logger.info("Disconnected: %s", notification.label)
    elif notification.type == NotificationType.LOG:
        logger.debug("%s", notification.message)


def run_daemon(
    config: WatchConfig,
    on_notification: Callable[[Notification], None] | None = None,
) -> int:
    """Run the daemon with the given configuration."""
    daemon = WatchDaemon(config)
    daemon.install_signal_handlers()
    try:
        return daemon.run(on_notification or log_notification)
    except Exception as e:
        logger.exception("Daemon crashed: %s", e)
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the daemon."""
    parser = argparse.ArgumentParser(
        prog="usb-watchd",
        description="USB hotplug monitor daemon",
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
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, yaml.YAMLError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        config.daemon.log_level = "debug"

    errors = validate_config(config)
    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    return run_daemon(config)


if __name__ == "__main__":
    sys.exit(main())
