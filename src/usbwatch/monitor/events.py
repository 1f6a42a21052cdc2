"""
Outbound monitor notifications.

The monitor loop reports through a Notifier: device connected, device
disconnected, log message, and finished. Notifiers must not block the loop
for long; they are fire-and-forget from the loop's point of view.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator


logger = logging.getLogger(__name__)


class NotificationType(Enum):
    """Notification kinds, in the order a session can produce them."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    LOG = "log"
    FINISHED = "finished"


@dataclass(frozen=True)
class Notification:
    """One outbound notification."""

    type: NotificationType
    label: str | None = None
    composite_key: str | None = None
    message: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "label": self.label,
            "composite_key": self.composite_key,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class Notifier:
    """
    Notification sink for the monitor loop.

    The base class discards everything; subclasses override what they need.
    """

    def device_connected(self, label: str, composite_key: str) -> None:
        pass

    def device_disconnected(self, label: str, composite_key: str) -> None:
        pass

    def log_message(self, text: str) -> None:
        pass

    def finished(self) -> None:
        pass


class QueueNotifier(Notifier):
    """
    Notifier that turns every call into a Notification on a queue.

    Consumers on other threads read notifications in emission order.
    Putting is reentrant, so a signal handler may emit while the main
    thread is blocked in ``get``.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Notification] = queue.SimpleQueue()

    def device_connected(self, label: str, composite_key: str) -> None:
        self.put(Notification(NotificationType.CONNECTED, label, composite_key))

    def device_disconnected(self, label: str, composite_key: str) -> None:
        self.put(Notification(NotificationType.DISCONNECTED, label, composite_key))

    def log_message(self, text: str) -> None:
        self.put(Notification(NotificationType.LOG, message=text))

    def finished(self) -> None:
        self.put(Notification(NotificationType.FINISHED))

    def put(self, notification: Notification) -> None:
        self._queue.put(notification)

    def get(self, timeout: float | None = None) -> Notification | None:
        """
        Get the next notification.

        Args:
            timeout: Seconds to wait; None blocks until one arrives

        Returns:
            Next notification, or None on timeout.
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> Notification | None:
        """Get next notification without blocking."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> Iterator[Notification]:
        """Yield queued notifications until the queue is empty."""
        while True:
            notification = self.get_nowait()
            if notification is None:
                return
            yield notification

    def until_finished(self, poll: float = 0.5) -> Iterator[Notification]:
        """Yield notifications up to and including FINISHED."""
        while True:
            notification = self.get(timeout=poll)
            if notification is None:
                continue
            yield notification
            if notification.type == NotificationType.FINISHED:
                return

    @property
    def qsize(self) -> int:
        """Get current queue size."""
        return self._queue.qsize()

    @property
    def empty(self) -> bool:
        """Check if queue is empty."""
        return self._queue.empty()


# Type alias for notification handlers
NotificationHandler = Callable[[Notification], None]


class NotificationDispatcher(Notifier):
    """
    Notifier that fans notifications out to registered handlers.

    Handlers are called in registration order. A failing handler is logged
    and does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[NotificationType, list[NotificationHandler]] = {}

    def register(self, notification_type: NotificationType, handler: NotificationHandler) -> None:
        """
        Register a handler for a notification type.

        Args:
            notification_type: Type of notification to handle
            handler: Handler function
        """
        if notification_type not in self._handlers:
            self._handlers[notification_type] = []
        self._handlers[notification_type].append(handler)
        logger.debug("Registered handler for %s", notification_type.value)

    def register_all(self, handler: NotificationHandler) -> None:
        """Register a handler for every notification type."""
        for notification_type in NotificationType:
            self.register(notification_type, handler)

    def unregister(self, notification_type: NotificationType, handler: NotificationHandler) -> None:
        """
        Unregister a handler.

        Args:
            notification_type: Type of notification
            handler: Handler to remove
        """
        if notification_type in self._handlers:
            self._handlers[notification_type].remove(handler)

    def dispatch(self, notification: Notification) -> None:
        """Deliver a notification to all handlers of its type."""
        for handler in self._handlers.get(notification.type, []):
            try:
                handler(notification)
            except Exception as e:
                logger.error("Handler error for %s: %s", notification.type.value, e)

    def device_connected(self, label: str, composite_key: str) -> None:
        self.dispatch(Notification(NotificationType.CONNECTED, label, composite_key))

    def device_disconnected(self, label: str, composite_key: str) -> None:
        self.dispatch(Notification(NotificationType.DISCONNECTED, label, composite_key))

    def log_message(self, text: str) -> None:
        self.dispatch(Notification(NotificationType.LOG, message=text))

    def finished(self) -> None:
        self.dispatch(Notification(NotificationType.FINISHED))
