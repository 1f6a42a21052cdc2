"""
Kernel uevent payload decoding.

A uevent datagram is a run of NUL-terminated ``KEY=VALUE`` lines, preceded
by an ``action@devpath`` header line.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Mapping


# uevent key -> UEventRecord attribute
KNOWN_FIELDS = {
    "ACTION": "action",
    "DEVPATH": "devpath",
    "SUBSYSTEM": "subsystem",
    "ID_BUS": "id_bus",
    "PRODUCT": "product",
    "ID_MODEL": "id_model",
    "DEVNAME": "devname",
}

# udevd rebroadcasts events with a binary header in front of the properties
LIBUDEV_PREFIX = b"libudev\0"
LIBUDEV_HEADER = struct.Struct("=8sIIII")


@dataclass(frozen=True)
class UEventRecord:
    """One decoded uevent."""

    action: str | None = None
    devpath: str | None = None
    subsystem: str | None = None
    id_bus: str | None = None
    product: str | None = None  # "vid/pid/bcdDevice", hex without padding
    id_model: str | None = None
    devname: str | None = None
    # Compared but left out of the hash
    extra: dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_fields(cls, fields: Mapping[str, str]) -> UEventRecord:
        """Build a record from a raw key/value mapping."""
        named = {}
        extra = {}
        for key, value in fields.items():
            attr = KNOWN_FIELDS.get(key)
            if attr is None:
                extra[key] = value
            else:
                named[attr] = value
        return cls(extra=extra, **named)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Look up a field by its uevent key."""
        attr = KNOWN_FIELDS.get(key)
        if attr is not None:
            value = getattr(self, attr)
            return default if value is None else value
        return self.extra.get(key, default)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def as_dict(self) -> dict[str, str]:
        """Return every field keyed by its uevent key."""
        fields = {
            key: getattr(self, attr)
            for key, attr in KNOWN_FIELDS.items()
            if getattr(self, attr) is not None
        }
        fields.update(self.extra)
        return fields


def strip_libudev_header(payload: bytes) -> bytes:
    """
    Return the property block of a udevd message.

    Kernel messages, and anything too short to carry the header, are
    returned unchanged.
    """
    if not payload.startswith(LIBUDEV_PREFIX) or len(payload) < LIBUDEV_HEADER.size:
        return payload
    _, _, _, offset, length = LIBUDEV_HEADER.unpack_from(payload)
    return payload[offset:offset + length]


def decode(payload: bytes) -> UEventRecord:
    """
    Decode a raw uevent payload.

    Lines without ``=`` are skipped and decoding stops at the first empty
    line. Malformed input yields a partial or empty record, never an error.

    Args:
        payload: Datagram as read from the netlink socket

    Returns:
        Decoded UEventRecord
    """
    fields: dict[str, str] = {}
    for raw_line in strip_libudev_header(bytes(payload)).split(b"\0"):
        if not raw_line:
            break
        line = raw_line.decode("utf-8", errors="replace")
        key, sep, value = line.partition("=")
        if sep:
            fields[key] = value
    return UEventRecord.from_fields(fields)


def encode(fields: Mapping[str, str], header: str | None = None) -> bytes:
    """
    Build a uevent payload from key/value pairs.

    Used to replay captured events and to build test payloads.
    """
    lines = [header] if header else []
    lines.extend(f"{key}={value}" for key, value in fields.items())
    return b"".join(line.encode("utf-8") + b"\0" for line in lines)
