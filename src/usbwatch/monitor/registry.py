"""
Connected device registry.

Tracks which devices are currently attached and turns classified events
into add/remove transitions, suppressing duplicate adds and stray removes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from usbwatch.monitor.classifier import Action, ClassifiedEvent


logger = logging.getLogger(__name__)

LabelFn = Callable[[ClassifiedEvent], str | None]


class TransitionKind(Enum):
    """Registry transition types."""

    ADDED = "added"
    REMOVED = "removed"
    NOOP = "noop"


@dataclass(frozen=True)
class RegistryEntry:
    """A connected device."""

    key: str
    label: str

    @property
    def composite_key(self) -> str:
        """Key and label joined for caller-side correlation."""
        return f"{self.key}:{self.label}"


@dataclass(frozen=True)
class RegistryTransition:
    """Result of applying one event to the registry."""

    kind: TransitionKind
    key: str | None = None
    label: str | None = None

    @classmethod
    def noop(cls) -> RegistryTransition:
        return cls(TransitionKind.NOOP)

    @property
    def changed(self) -> bool:
        """Check if the registry was mutated."""
        return self.kind != TransitionKind.NOOP

    @property
    def composite_key(self) -> str | None:
        """Key and label joined for caller-side correlation."""
        if self.key is None or self.label is None:
            return None
        return f"{self.key}:{self.label}"


class DeviceRegistry:
    """
    Map of currently connected devices keyed by parent device path.

    Holds at most one entry per key. Only ``apply`` adds or removes
    entries; the owning monitor loop is the single writer.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}

    def apply(self, event: ClassifiedEvent, label_fn: LabelFn) -> RegistryTransition:
        """
        Apply a classified event.

        Args:
            event: Classified uevent
            label_fn: Called for new devices only, to produce their label.
                An empty label means the device is not registered.

        Returns:
            The resulting transition.
        """
        if event.action == Action.ADD:
            if event.key in self._entries:
                return RegistryTransition.noop()

            label = label_fn(event)
            if not label:
                logger.debug("No label for %s, not registering", event.key)
                return RegistryTransition.noop()

            self._entries[event.key] = RegistryEntry(key=event.key, label=label)
            return RegistryTransition(TransitionKind.ADDED, event.key, label)

        if event.action == Action.REMOVE:
            entry = self._entries.pop(event.key, None)
            if entry is None:
                return RegistryTransition.noop()
            return RegistryTransition(TransitionKind.REMOVED, entry.key, entry.label)

        return RegistryTransition.noop()

    def get(self, key: str) -> RegistryEntry | None:
        """Get the entry for a key."""
        return self._entries.get(key)

    def entries(self) -> list[RegistryEntry]:
        """List connected devices in connection order."""
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
