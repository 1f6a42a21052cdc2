"""
USB event classification.

Decides whether a decoded uevent describes a USB device or USB-backed
storage, and derives the key that ties a device's add and remove events
together.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from usbwatch.monitor.uevent import UEventRecord


SUBSYSTEM_USB = "usb"
SUBSYSTEM_BLOCK = "block"
SUPPORTED_SUBSYSTEMS = frozenset({SUBSYSTEM_USB, SUBSYSTEM_BLOCK})

# Bus-relative USB port address such as "1-1" or "2-1.4.3", as the last segment
PORT_ID_PATTERN = re.compile(r"(\d+-\d+(\.\d+)*)/$")

USB_MARKER = "/usb"


class Action(Enum):
    """Device actions relevant to the registry."""

    ADD = "add"
    REMOVE = "remove"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: str) -> Action:
        """Map a uevent ACTION value to an Action."""
        if value == "add":
            return cls.ADD
        if value == "remove":
            return cls.REMOVE
        return cls.OTHER


class RejectReason(Enum):
    """Why an event was filtered out."""

    MISSING_FIELDS = "missing_fields"
    UNSUPPORTED_SUBSYSTEM = "unsupported_subsystem"
    NON_USB_BLOCK = "non_usb_block"
    MALFORMED_PATH = "malformed_path"
    USB_CONTAINER = "usb_container"


@dataclass(frozen=True)
class ClassifiedEvent:
    """An in-scope uevent with its registry key."""

    action: Action
    key: str
    subsystem: str
    record: UEventRecord

    @property
    def raw_action(self) -> str:
        """ACTION value as sent by the kernel."""
        return self.record.action or ""


@dataclass(frozen=True)
class Rejected:
    """An out-of-scope or malformed uevent."""

    reason: RejectReason


def parent_devpath(devpath: str) -> str | None:
    """
    Get the device path one level above the leaf.

    Returns:
        Parent path, or None if the path has no separator.
    """
    last_slash = devpath.rfind("/")
    if last_slash == -1:
        return None
    return devpath[:last_slash]


def is_usb_container(parent: str) -> bool:
    """
    Check whether a parent path points at a USB bus or hub container node.

    Every physical USB device has a port address with at least one hyphen
    after the ``/usbN`` bus segment; interfaces hanging directly off the
    root hub do not.
    """
    usb_pos = parent.find(USB_MARKER)
    if usb_pos == -1:
        return False
    return parent[usb_pos + len(USB_MARKER):].count("-") < 1


def get_port_id(devpath: str) -> str | None:
    """
    Extract the USB port address from the trailing segment of a device path.

    Args:
        devpath: Kernel device path, e.g. /devices/.../usb1/1-1/1-1.2

    Returns:
        Port id such as "1-1.2", or None if the last segment is not one.
    """
    match = PORT_ID_PATTERN.search(devpath + "/")
    if match is None:
        return None
    return match.group(1)


def classify(record: UEventRecord) -> ClassifiedEvent | Rejected:
    """
    Classify a decoded uevent.

    Rules are applied in order and the first one that fails rejects the
    event.

    Args:
        record: Decoded uevent

    Returns:
        ClassifiedEvent for in-scope events, Rejected otherwise.
    """
    if record.action is None or record.devpath is None:
        return Rejected(RejectReason.MISSING_FIELDS)

    subsystem = record.subsystem or ""
    if subsystem not in SUPPORTED_SUBSYSTEMS:
        return Rejected(RejectReason.UNSUPPORTED_SUBSYSTEM)

    # Only storage that sits on the USB bus
    if subsystem == SUBSYSTEM_BLOCK and record.id_bus != "usb":
        return Rejected(RejectReason.NON_USB_BLOCK)

    parent = parent_devpath(record.devpath)
    if parent is None:
        return Rejected(RejectReason.MALFORMED_PATH)

    if subsystem == SUBSYSTEM_USB and is_usb_container(parent):
        return Rejected(RejectReason.USB_CONTAINER)

    return ClassifiedEvent(
        action=Action.from_string(record.action),
        key=parent,
        subsystem=subsystem,
        record=record,
    )
