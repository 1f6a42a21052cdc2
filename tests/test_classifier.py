"""
Tests for USB event classification.
"""

from __future__ import annotations

import pytest

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
from usbwatch.monitor.uevent import UEventRecord, decode


USB_BUS = "/devices/pci0000:00/0000:00:14.0/usb1"


def _record(**fields: str) -> UEventRecord:
    return UEventRecord.from_fields(fields)


class TestRejection:
    """Tests for each rejection rule."""

    def test_missing_action(self) -> None:
        """Test events without ACTION are rejected."""
        result = classify(_record(DEVPATH=f"{USB_BUS}/1-1", SUBSYSTEM="usb"))
        assert result == Rejected(RejectReason.MISSING_FIELDS)

    def test_missing_devpath(self) -> None:
        """Test events without DEVPATH are rejected."""
        result = classify(_record(ACTION="add", SUBSYSTEM="usb"))
        assert result == Rejected(RejectReason.MISSING_FIELDS)

    def test_missing_subsystem(self) -> None:
        """Test a missing SUBSYSTEM is treated as unsupported."""
        result = classify(_record(ACTION="add", DEVPATH=f"{USB_BUS}/1-1/1-1:1.0"))
        assert result == Rejected(RejectReason.UNSUPPORTED_SUBSYSTEM)

    @pytest.mark.parametrize("subsystem", ["input", "hidraw", "net", "tty", ""])
    def test_other_subsystems(self, subsystem: str) -> None:
        """Test non-USB subsystems are rejected."""
        result = classify(
            _record(ACTION="add", DEVPATH=f"{USB_BUS}/1-1/1-1:1.0", SUBSYSTEM=subsystem)
        )
        assert result == Rejected(RejectReason.UNSUPPORTED_SUBSYSTEM)

    def test_block_without_bus(self) -> None:
        """Test block events without ID_BUS are rejected."""
        result = classify(
            _record(ACTION="add", DEVPATH="/devices/virtual/block/loop0", SUBSYSTEM="block")
        )
        assert result == Rejected(RejectReason.NON_USB_BLOCK)

    def test_block_on_other_bus(self) -> None:
        """Test SATA and NVMe disks are rejected."""
        result = classify(
            _record(
                ACTION="add",
                DEVPATH="/devices/pci0000:00/0000:00:17.0/ata1/host0/block/sda",
                SUBSYSTEM="block",
                ID_BUS="ata",
            )
        )
        assert result == Rejected(RejectReason.NON_USB_BLOCK)

    def test_devpath_without_separator(self) -> None:
        """Test device paths without a parent are rejected."""
        result = classify(_record(ACTION="add", DEVPATH="usb1", SUBSYSTEM="usb"))
        assert result == Rejected(RejectReason.MALFORMED_PATH)

    def test_root_hub_interface(self) -> None:
        """Test interfaces directly under the bus node are rejected."""
        result = classify(
            _record(ACTION="add", DEVPATH=f"{USB_BUS}/1-0:1.0", SUBSYSTEM="usb")
        )
        assert result == Rejected(RejectReason.USB_CONTAINER)

    def test_device_node_under_bus(self) -> None:
        """Test the device node itself is rejected; its interfaces carry the key."""
        result = classify(_record(ACTION="add", DEVPATH=f"{USB_BUS}/1-1", SUBSYSTEM="usb"))
        assert result == Rejected(RejectReason.USB_CONTAINER)

    def test_rules_applied_in_order(self) -> None:
        """Test the first failing rule determines the reason."""
        result = classify(_record(ACTION="add", DEVPATH="sdb", SUBSYSTEM="block"))
        assert result == Rejected(RejectReason.NON_USB_BLOCK)


class TestAcceptance:
    """Tests for accepted events."""

    def test_usb_interface(self, usb_interface_add: bytes) -> None:
        """Test a device interface is keyed by its device path."""
        result = classify(decode(usb_interface_add))
        assert isinstance(result, ClassifiedEvent)
        assert result.action == Action.ADD
        assert result.subsystem == "usb"
        assert result.key == f"{USB_BUS}/1-1"

    def test_nested_hub_port(self) -> None:
        """Test devices behind an external hub are accepted."""
        result = classify(
            _record(
                ACTION="add",
                DEVPATH=f"{USB_BUS}/1-1/1-1.4/1-1.4:1.0",
                SUBSYSTEM="usb",
            )
        )
        assert isinstance(result, ClassifiedEvent)
        assert result.key == f"{USB_BUS}/1-1/1-1.4"

    def test_usb_without_bus_marker(self) -> None:
        """Test paths without a /usb segment skip the hyphen check."""
        result = classify(
            _record(ACTION="add", DEVPATH="/devices/pci0000:00/0000:00:14.0", SUBSYSTEM="usb")
        )
        assert isinstance(result, ClassifiedEvent)
        assert result.key == "/devices/pci0000:00"

    def test_usb_block_device(self, usb_storage_add: bytes) -> None:
        """Test USB storage is keyed by its parent path."""
        result = classify(decode(usb_storage_add))
        assert isinstance(result, ClassifiedEvent)
        assert result.subsystem == "block"
        assert result.key.endswith("/0:0:0:0/block")

    def test_block_skips_hyphen_check(self) -> None:
        """Test the container rule only applies to the usb subsystem."""
        result = classify(
            _record(
                ACTION="add",
                DEVPATH=f"{USB_BUS}/block/sdz",
                SUBSYSTEM="block",
                ID_BUS="usb",
            )
        )
        assert isinstance(result, ClassifiedEvent)

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("add", Action.ADD),
            ("remove", Action.REMOVE),
            ("bind", Action.OTHER),
            ("change", Action.OTHER),
            ("ADD", Action.OTHER),
        ],
    )
    def test_actions(self, raw: str, expected: Action) -> None:
        """Test ACTION mapping; unknown actions still classify."""
        result = classify(
            _record(ACTION=raw, DEVPATH=f"{USB_BUS}/1-1/1-1:1.0", SUBSYSTEM="usb")
        )
        assert isinstance(result, ClassifiedEvent)
        assert result.action == expected
        assert result.raw_action == raw

    def test_add_and_remove_share_key(
        self, usb_interface_add: bytes, usb_interface_remove: bytes
    ) -> None:
        """Test the key is identical for a device's add and remove."""
        added = classify(decode(usb_interface_add))
        removed = classify(decode(usb_interface_remove))
        assert added.key == removed.key

    def test_events_are_hashable(self, usb_interface_add: bytes) -> None:
        """Test classified events can be used in sets."""
        first = classify(decode(usb_interface_add))
        second = classify(decode(usb_interface_add))
        assert first == second
        assert len({first, second}) == 1


class TestHelpers:
    """Tests for path helpers."""

    def test_parent_devpath(self) -> None:
        assert parent_devpath("/devices/a/b") == "/devices/a"
        assert parent_devpath("/b") == ""
        assert parent_devpath("b") is None

    def test_is_usb_container(self) -> None:
        """Test the hyphen heuristic on parent paths."""
        assert is_usb_container(f"{USB_BUS}") is True
        assert is_usb_container(f"{USB_BUS}/1-1") is False
        assert is_usb_container(f"{USB_BUS}/1-1/1-1.2") is False
        assert is_usb_container("/devices/pci0000:00") is False


class TestPortId:
    """Tests for get_port_id."""

    @pytest.mark.parametrize(
        "devpath,expected",
        [
            (f"{USB_BUS}/1-1", "1-1"),
            (f"{USB_BUS}/1-1/1-1.2", "1-1.2"),
            (f"{USB_BUS}/1-1/1-1.2/1-1.2.4", "1-1.2.4"),
            ("3-10", "3-10"),
        ],
    )
    def test_port_ids(self, devpath: str, expected: str) -> None:
        assert get_port_id(devpath) == expected

    @pytest.mark.parametrize(
        "devpath",
        [
            USB_BUS,
            f"{USB_BUS}/1-1/1-1:1.0",
            f"{USB_BUS}/1-1/",
            "/devices/virtual/block/loop0",
            "",
        ],
    )
    def test_no_port_id(self, devpath: str) -> None:
        assert get_port_id(devpath) is None
