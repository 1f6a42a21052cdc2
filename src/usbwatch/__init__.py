"""
USB Watch - USB hotplug monitor.

Listens to kernel uevents over netlink, filters them down to USB devices
and USB-backed storage, and reports each physical connection and
disconnection exactly once.
"""

__version__ = "0.1.0"
__author__ = "USB Watch Contributors"

from usbwatch.config import WatchConfig, load_config

__all__ = ["WatchConfig", "load_config", "__version__"]
