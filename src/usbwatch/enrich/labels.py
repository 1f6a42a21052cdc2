"""
Human-readable labels for newly connected devices.
"""

from __future__ import annotations

import logging

from usbwatch.enrich.lookup import BlockLookup, UsbLookup, parse_product
from usbwatch.monitor.classifier import SUBSYSTEM_BLOCK, SUBSYSTEM_USB, ClassifiedEvent


logger = logging.getLogger(__name__)

USB_PREFIX = "Device: "
BLOCK_PREFIX = "Storage: "


class DeviceLabeler:
    """
    Label function for the device registry.

    USB devices are labelled from their descriptor strings, falling back to
    the uevent's ID_MODEL and then to ``unknown_label``. Block devices are
    labelled from the udev database and get no label if they are not found
    there. Lookup failures produce an empty label, which keeps the device
    out of the registry.
    """

    def __init__(
        self,
        unknown_label: str = "Unknown",
        usb_lookup: UsbLookup | None = None,
        block_lookup: BlockLookup | None = None,
        lookups_enabled: bool = True,
    ) -> None:
        self.unknown_label = unknown_label
        self.usb_lookup = usb_lookup or UsbLookup()
        self.block_lookup = block_lookup or BlockLookup()
        self.lookups_enabled = lookups_enabled

    def __call__(self, event: ClassifiedEvent) -> str:
        try:
            if event.subsystem == SUBSYSTEM_USB:
                return self.label_usb(event)
            if event.subsystem == SUBSYSTEM_BLOCK:
                return self.label_block(event)
        except Exception as e:
            logger.debug("Could not label %s: %s", event.key, e)
        return ""

    def label_usb(self, event: ClassifiedEvent) -> str:
        """Label a USB device from its PRODUCT vid/pid."""
        record = event.record
        if not record.product:
            return ""

        if self.lookups_enabled:
            ids = parse_product(record.product)
            descriptor = self.usb_lookup.find(*ids) if ids else None
            if descriptor is not None and descriptor.description:
                return USB_PREFIX + descriptor.description

        return USB_PREFIX + (record.id_model or self.unknown_label)

    def label_block(self, event: ClassifiedEvent) -> str:
        """Label a USB storage device from its device node."""
        devname = event.record.devname
        if not devname:
            return ""
        name = devname.rsplit("/", 1)[-1]
        if not name:
            return ""

        if not self.lookups_enabled:
            return BLOCK_PREFIX + name

        descriptor = self.block_lookup.find(name)
        if descriptor is None:
            return ""
        return BLOCK_PREFIX + descriptor.summary()
