"""
Pytest configuration and shared fixtures for USB Watch tests.
"""

from __future__ import annotations

import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Generator

import pytest
import yaml

from usbwatch.monitor.channel import ChannelError
from usbwatch.monitor.uevent import encode


# Root hub of the first xHCI controller
USB_BUS = "/devices/pci0000:00/0000:00:14.0/usb1"


class FakeChannel:
    """
    Scripted stand-in for RawEventChannel.

    Each read consumes the next script item: bytes are returned, None is
    a timeout, and an exception instance is raised. Once the script runs
    out the channel sets ``cancel`` (if given) and reports timeouts.
    """

    def __init__(
        self,
        script: list | None = None,
        cancel: threading.Event | None = None,
        open_error: Exception | None = None,
    ) -> None:
        self.script = list(script or [])
        self.cancel = cancel
        self.open_error = open_error
        self.open_calls = 0
        self.close_calls = 0
        self.reads = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        self._open = True

    def read_timeout(self, timeout: float) -> bytes | None:
        self.reads += 1
        if not self.script:
            if self.cancel is not None:
                self.cancel.set()
            else:
                time.sleep(min(timeout, 0.01))
            return None
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.close_calls += 1
        self._open = False


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "usbwatch.yaml"
    config_data = {
        "daemon": {
            "log_level": "debug",
        },
        "channel": {
            "group": 2,
            "read_timeout": 0.25,
        },
        "enrichment": {
            "unknown_label": "Mystery device",
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def make_uevent() -> Callable[..., bytes]:
    """Factory for kernel-style uevent payloads."""

    def _make(action: str, devpath: str, subsystem: str | None = "usb", **fields: str) -> bytes:
        data = {"ACTION": action, "DEVPATH": devpath}
        if subsystem is not None:
            data["SUBSYSTEM"] = subsystem
        data.update(fields)
        return encode(data, header=f"{action}@{devpath}")

    return _make


@pytest.fixture
def usb_interface_add(make_uevent) -> bytes:
    """Add event for the first interface of a device on port 1-1."""
    return make_uevent(
        "add",
        f"{USB_BUS}/1-1/1-1:1.0",
        PRODUCT="46d/c534/2901",
        INTERFACE="3/1/1",
    )


@pytest.fixture
def usb_interface_remove(make_uevent) -> bytes:
    """Remove event matching usb_interface_add."""
    return make_uevent(
        "remove",
        f"{USB_BUS}/1-1/1-1:1.0",
        PRODUCT="46d/c534/2901",
        INTERFACE="3/1/1",
    )


@pytest.fixture
def usb_storage_add(make_uevent) -> bytes:
    """Add event for a USB stick's disk node."""
    return make_uevent(
        "add",
        f"{USB_BUS}/1-2/1-2:1.0/host0/target0:0:0/0:0:0:0/block/sdb",
        subsystem="block",
        DEVNAME="/dev/sdb",
        DEVTYPE="disk",
        ID_BUS="usb",
        ID_MODEL="Cruzer_Blade",
    )


@pytest.fixture
def channel_open_error() -> ChannelError:
    return ChannelError("Failed to bind netlink socket: [Errno 98] Address already in use")


@pytest.fixture
def fake_channel_cls() -> type[FakeChannel]:
    """The scripted channel class, for tests that build their own."""
    return FakeChannel
