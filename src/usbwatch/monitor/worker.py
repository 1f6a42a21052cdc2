"""
USB hotplug monitor loop.

Reads uevents from the kernel channel, classifies them, applies them to
the device registry, and reports connections and disconnections.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from usbwatch.monitor.channel import ChannelError, RawEventChannel, ReadError
from usbwatch.monitor.classifier import Action, ClassifiedEvent, Rejected, classify
from usbwatch.monitor.events import Notifier
from usbwatch.monitor.registry import (
    DeviceRegistry,
    LabelFn,
    RegistryTransition,
    TransitionKind,
)
from usbwatch.monitor.uevent import decode


logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT = 1.0


class MonitorLoop:
    """
    Single-worker monitor loop.

    All channel, classification and registry work happens on the thread
    running ``run``. Other threads only touch the cancel token.
    """

    def __init__(
        self,
        notifier: Notifier,
        labeler: LabelFn | None = None,
        channel_factory: Callable[[], RawEventChannel] | None = None,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        registry: DeviceRegistry | None = None,
    ) -> None:
        """
        Initialize the loop.

        Args:
            notifier: Receives connect/disconnect/log/finished notifications
            labeler: Produces a label for newly added devices; an empty
                label suppresses the device. Without a labeler no device
                is ever registered; pass a ``DeviceLabeler`` for the
                default "Device: ..." and "Storage: ..." labels
            channel_factory: Creates the uevent channel for each session
            read_timeout: Seconds between cancellation checks
            registry: Device registry (a new one by default)
        """
        self.notifier = notifier
        self.labeler = labeler
        self.channel_factory = channel_factory or RawEventChannel
        self.read_timeout = read_timeout
        self.registry = registry if registry is not None else DeviceRegistry()
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._running = False
        self._thread: threading.Thread | None = None
        self.last_error: str | None = None

        if labeler is None:
            logger.warning("No labeler given, devices will not be registered")

    @property
    def is_running(self) -> bool:
        """Check if a monitoring session is active."""
        return self._running

    def start_monitoring(self) -> None:
        """Start monitoring on a background thread. Returns immediately."""
        with self._state_lock:
            if self._running or (self._thread is not None and self._thread.is_alive()):
                self.notifier.log_message("Monitoring is already running.")
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self.run,
                args=(self._stop_event,),
                name="usb-monitor",
                daemon=True,
            )
            self._thread.start()

    def stop_monitoring(self) -> None:
        """Request the loop to stop after the current read."""
        self.notifier.log_message("Stopping monitoring...")
        self._stop_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for the background thread to exit.

        Returns:
            True if no session thread is alive afterwards.
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def run(self, cancel: threading.Event | None = None) -> None:
        """
        Run a monitoring session on the calling thread until cancelled.

        Never raises: every failure is reported through the notifier and
        ends the session with ``finished``.

        Args:
            cancel: Cancel token; defaults to the one ``stop_monitoring`` sets,
                which is cleared first so an earlier stop does not end this
                session
        """
        if self._running:
            self.notifier.log_message("Monitoring is already running.")
            return

        if cancel is None:
            self._stop_event.clear()
            cancel = self._stop_event

        self.last_error = None
        channel = self.channel_factory()
        try:
            channel.open()
        except ChannelError as e:
            self.last_error = str(e)
            logger.error("Cannot open uevent channel: %s", e)
            self.notifier.log_message(f"Error: {e}")
            self.notifier.finished()
            return

        self._running = True
        logger.info("Monitoring USB events")
        self.notifier.log_message("Started monitoring USB events...")

        try:
            while not cancel.is_set():
                try:
                    payload = channel.read_timeout(self.read_timeout)
                except ReadError as e:
                    self.last_error = str(e)
                    logger.error("Uevent channel read failed: %s", e)
                    self.notifier.log_message(f"Error: {e}")
                    break
                if payload is None:
                    continue
                self.handle_payload(payload)
        except Exception as e:
            self.last_error = str(e)
            logger.exception("Monitor loop crashed")
            self.notifier.log_message(f"Error: {e}")
        finally:
            channel.close()
            self._running = False
            logger.info("Monitoring stopped")
            self.notifier.log_message("Monitoring stopped.")
            self.notifier.finished()

    def handle_payload(self, payload: bytes) -> RegistryTransition | None:
        """
        Process one raw uevent.

        Returns:
            The registry transition, or None if the event was filtered out.
        """
        result = classify(decode(payload))
        if isinstance(result, Rejected):
            return None

        transition = self.registry.apply(result, self._describe)
        if transition.kind == TransitionKind.ADDED:
            logger.info("Device connected: %s (%s)", transition.label, transition.key)
            self.notifier.device_connected(transition.label, transition.composite_key)
        elif transition.kind == TransitionKind.REMOVED:
            logger.info("Device disconnected: %s (%s)", transition.label, transition.key)
            self.notifier.device_disconnected(transition.label, transition.composite_key)
        return transition

    def _describe(self, event: ClassifiedEvent) -> str:
        """Label a new device, degrading any lookup failure to no label."""
        if self.labeler is None or event.action != Action.ADD:
            return ""
        try:
            return self.labeler(event) or ""
        except Exception as e:
            logger.debug("Label lookup failed for %s: %s", event.key, e)
            return ""
