"""
Configuration management for USB Watch.

Handles loading, validation, and access to monitor configuration.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/usb-watch/usbwatch.yaml")

# Smallest receive buffers that hold a whole message
KERNEL_MIN_BUFFER = 2048
UDEV_MIN_BUFFER = 8192


@dataclass
class DaemonConfig:
    """Monitor process settings."""

    log_level: str = "info"
    log_file: str | None = None


@dataclass
class ChannelConfig:
    """Kernel uevent channel settings."""

    group: int = 1
    read_timeout: float = 1.0
    buffer_size: int = 8192


@dataclass
class EnrichmentConfig:
    """Device label lookup settings."""

    enabled: bool = True
    unknown_label: str = "Unknown"


@dataclass
class WatchConfig:
    """Main configuration container."""

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    channel: ChannelConfig = field(default_factory=ChannelConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WatchConfig:
        """
        Create configuration from dictionary.

        Raises:
            ValueError: If a section or key is unknown, or a section is not
                a mapping.
        """
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")
        unknown = sorted(str(k) for k in data if k not in {f.name for f in fields(cls)})
        if unknown:
            raise ValueError(f"Unknown configuration section: {', '.join(unknown)}")

        return cls(
            daemon=_load_section(DaemonConfig, "daemon", data),
            channel=_load_section(ChannelConfig, "channel", data),
            enrichment=_load_section(EnrichmentConfig, "enrichment", data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)


def _load_section(section_cls: type, name: str, data: dict[str, Any]) -> Any:
    """Build one config section, rejecting keys the section does not have."""
    values = data.get(name) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    known = {f.name for f in fields(section_cls)}
    unknown = sorted(str(k) for k in values if k not in known)
    if unknown:
        raise ValueError(f"Unknown key in '{name}' section: {', '.join(unknown)}")
    return section_cls(**values)


def load_config(path: str | Path | None = None) -> WatchConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to configuration file. If None, uses default paths.

    Returns:
        WatchConfig instance with loaded settings.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValueError: If the file has unknown sections or keys.
    """
    if path is None:
        # Try default locations
        candidates = [
            DEFAULT_CONFIG_PATH,
            Path("config/usbwatch.yaml"),
            Path("usbwatch.yaml"),
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None:
        return WatchConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return WatchConfig.from_dict(data)


def validate_config(config: WatchConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    valid_log_levels = {"debug", "info", "warning", "error"}
    if config.daemon.log_level not in valid_log_levels:
        errors.append(f"Invalid log_level: {config.daemon.log_level}")

    # 1: kernel uevents, 2: udevd rebroadcasts
    valid_groups = {1, 2}
    if config.channel.group not in valid_groups:
        errors.append(f"Invalid netlink group: {config.channel.group}")

    read_timeout = config.channel.read_timeout
    if not isinstance(read_timeout, (int, float)) or isinstance(read_timeout, bool) or read_timeout <= 0:
        errors.append(f"Invalid read_timeout: {read_timeout}")

    # Kernel uevents are at most 2048 bytes, udevd messages at most 8192
    buffer_size = config.channel.buffer_size
    min_buffer = UDEV_MIN_BUFFER if config.channel.group == 2 else KERNEL_MIN_BUFFER
    if not isinstance(buffer_size, int) or isinstance(buffer_size, bool):
        errors.append(f"Invalid buffer_size: {buffer_size}")
    elif buffer_size < min_buffer:
        errors.append(
            f"Invalid buffer_size: {buffer_size} (netlink group "
            f"{config.channel.group} needs at least {min_buffer})"
        )

    if not config.enrichment.unknown_label:
        errors.append("unknown_label must not be empty")

    return errors
