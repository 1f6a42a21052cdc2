"""
Device enrichment.

Turns classified USB and storage events into human-readable labels.
"""

from usbwatch.enrich.descriptors import (
    BlockDescriptor,
    UsbDescriptor,
    extract_block_descriptor,
    extract_usb_descriptor,
    format_size,
)
from usbwatch.enrich.labels import DeviceLabeler
from usbwatch.enrich.lookup import BlockLookup, UsbLookup, parse_product

__all__ = [
    "BlockDescriptor",
    "BlockLookup",
    "DeviceLabeler",
    "UsbDescriptor",
    "UsbLookup",
    "extract_block_descriptor",
    "extract_usb_descriptor",
    "format_size",
    "parse_product",
]
