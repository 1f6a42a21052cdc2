"""
Device descriptor data structures.

Holds the descriptor fields used to build human-readable device labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class UsbDescriptor:
    """USB device descriptor strings."""

    vid: str  # Vendor ID (hex string)
    pid: str  # Product ID (hex string)
    manufacturer: str | None = None
    product: str | None = None
    serial: str | None = None

    @property
    def usb_id(self) -> str:
        """Get the vid:pid pair."""
        return f"{self.vid}:{self.pid}"

    @property
    def description(self) -> str:
        """Manufacturer and product joined, empty if neither is known."""
        parts = [p.strip() for p in (self.manufacturer, self.product) if p and p.strip()]
        return " ".join(parts)


@dataclass
class BlockDescriptor:
    """Block device summary, using lsblk's NAME,MODEL,SIZE,FSTYPE,TRAN columns."""

    name: str
    model: str | None = None
    size: int | None = None  # bytes
    fstype: str | None = None
    transport: str | None = None

    def summary(self) -> str:
        """Single-line summary in lsblk column order."""
        columns = [
            self.name,
            self.model,
            format_size(self.size) if self.size is not None else None,
            self.fstype,
            self.transport,
        ]
        return " ".join(c for c in columns if c)


def format_size(size: int) -> str:
    """
    Format a byte count the way lsblk does.

    Args:
        size: Size in bytes

    Returns:
        Size such as "512B", "14.9G" or "1T".
    """
    units = ["B", "K", "M", "G", "T", "P", "E"]
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1

    if unit == 0:
        return f"{size}B"
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text}{units[unit]}"


def extract_usb_descriptor(dev: Any) -> UsbDescriptor:
    """
    Extract descriptor strings from a PyUSB device object.

    String descriptors need access to the device node; any that cannot be
    read are left as None.

    Args:
        dev: usb.core.Device object

    Returns:
        UsbDescriptor with parsed information
    """
    # Import here to avoid hard dependency
    import usb.core
    import usb.util

    def read_string(index: int) -> str | None:
        if not index:
            return None
        try:
            return usb.util.get_string(dev, index)
        except (usb.core.USBError, ValueError, NotImplementedError):
            return None

    return UsbDescriptor(
        vid=f"{dev.idVendor:04x}",
        pid=f"{dev.idProduct:04x}",
        manufacturer=read_string(dev.iManufacturer),
        product=read_string(dev.iProduct),
        serial=read_string(dev.iSerialNumber),
    )


def extract_block_descriptor(device: Any) -> BlockDescriptor:
    """
    Extract a block device summary from a pyudev device.

    Args:
        device: pyudev.Device in the block subsystem

    Returns:
        BlockDescriptor with parsed information
    """
    properties = device.properties

    size = None
    try:
        # sysfs reports 512-byte sectors regardless of the logical block size
        size = device.attributes.asint("size") * 512
    except (KeyError, ValueError):
        pass

    return BlockDescriptor(
        name=device.sys_name,
        model=properties.get("ID_MODEL"),
        size=size,
        fstype=properties.get("ID_FS_TYPE"),
        transport=properties.get("ID_BUS"),
    )
