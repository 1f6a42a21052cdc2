"""
USB Hotplug Monitor.

Kernel uevent ingestion, USB event classification, and the connected
device registry.
"""

from usbwatch.monitor.channel import (
    ChannelError,
    ChannelFailure,
    RawEventChannel,
    ReadError,
)
from usbwatch.monitor.classifier import (
    Action,
    ClassifiedEvent,
    Rejected,
    RejectReason,
    classify,
    get_port_id,
    is_usb_container,
    parent_devpath,
)
from usbwatch.monitor.events import (
    Notification,
    NotificationDispatcher,
    NotificationType,
    Notifier,
    QueueNotifier,
)
from usbwatch.monitor.registry import (
    DeviceRegistry,
    RegistryEntry,
    RegistryTransition,
    TransitionKind,
)
from usbwatch.monitor.uevent import UEventRecord, decode, encode
from usbwatch.monitor.worker import MonitorLoop

__all__ = [
    # Channel
    "ChannelError",
    "ChannelFailure",
    "RawEventChannel",
    "ReadError",
    # Decoding
    "UEventRecord",
    "decode",
    "encode",
    # Classification
    "Action",
    "ClassifiedEvent",
    "Rejected",
    "RejectReason",
    "classify",
    "get_port_id",
    "is_usb_container",
    "parent_devpath",
    # Registry
    "DeviceRegistry",
    "RegistryEntry",
    "RegistryTransition",
    "TransitionKind",
    # Notifications
    "Notification",
    "NotificationDispatcher",
    "NotificationType",
    "Notifier",
    "QueueNotifier",
    # Loop
    "MonitorLoop",
]
