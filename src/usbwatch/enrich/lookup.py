"""
Descriptor lookups for connected devices.

USB descriptors come from libusb through PyUSB; block devices come from
the udev database through pyudev.
"""

from __future__ import annotations

import logging

import usb.core

from usbwatch.enrich.descriptors import (
    BlockDescriptor,
    UsbDescriptor,
    extract_block_descriptor,
    extract_usb_descriptor,
)


logger = logging.getLogger(__name__)


def parse_product(product: str) -> tuple[str, str] | None:
    """
    Parse the uevent PRODUCT field.

    Args:
        product: Value such as "46d/c534/1201" (vid/pid/bcdDevice, unpadded hex)

    Returns:
        Zero-padded (vid, pid) pair, or None if the value is malformed.
    """
    parts = product.split("/")
    if len(parts) < 2:
        return None
    try:
        vid = int(parts[0], 16)
        pid = int(parts[1], 16)
    except ValueError:
        return None
    if not (0 <= vid <= 0xFFFF and 0 <= pid <= 0xFFFF):
        return None
    return f"{vid:04x}", f"{pid:04x}"


class UsbLookup:
    """USB descriptor lookup using PyUSB."""

    def find(self, vid: str, pid: str) -> UsbDescriptor | None:
        """
        Find the first connected device matching VID:PID.

        Args:
            vid: Vendor ID (hex string)
            pid: Product ID (hex string)

        Returns:
            UsbDescriptor if found, None otherwise.
        """
        try:
            dev = usb.core.find(idVendor=int(vid, 16), idProduct=int(pid, 16))
        except usb.core.NoBackendError:
            logger.warning("No USB backend available. Install libusb.")
            return None
        except usb.core.USBError as e:
            logger.debug("USB lookup for %s:%s failed: %s", vid, pid, e)
            return None

        if dev is None:
            return None
        return extract_usb_descriptor(dev)


class BlockLookup:
    """Block device lookup using pyudev."""

    def __init__(self) -> None:
        self._context = None

    def _ensure_context(self) -> None:
        """Initialize pyudev context if needed."""
        if self._context is None:
            import pyudev
            self._context = pyudev.Context()

    def find(self, name: str) -> BlockDescriptor | None:
        """
        Find a block device by kernel name.

        Args:
            name: Device node basename, e.g. "sdb1"

        Returns:
            BlockDescriptor if found, None otherwise.
        """
        import pyudev

        self._ensure_context()
        try:
            device = pyudev.Devices.from_name(self._context, "block", name)
        except pyudev.DeviceNotFoundError:
            return None
        return extract_block_descriptor(device)
