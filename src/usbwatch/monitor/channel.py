"""
Kernel uevent netlink channel.

Owns the raw AF_NETLINK socket the kernel broadcasts device events on and
provides a blocking read with a timeout, so callers can poll for
cancellation between reads.
"""

from __future__ import annotations

import errno
import logging
import os
import select
import socket
import time


logger = logging.getLogger(__name__)

# linux/netlink.h; not exported by the socket module
NETLINK_KOBJECT_UEVENT = 15

# Multicast group the kernel itself sends uevents to (udevd rebroadcasts on 2)
KERNEL_UEVENT_GROUP = 1

# Large enough for udevd messages as well as kernel ones
DEFAULT_BUFFER_SIZE = 8192


class ChannelFailure(Exception):
    """Base class for channel failures."""


class ChannelError(ChannelFailure):
    """The netlink socket could not be created or bound."""


class ReadError(ChannelFailure):
    """Waiting on or receiving from the socket failed."""


class RawEventChannel:
    """
    Raw kernel uevent socket.

    The channel is either closed or open. ``open`` moves it to open,
    ``close`` moves it back; a closed channel cannot be read.
    """

    def __init__(
        self,
        group: int = KERNEL_UEVENT_GROUP,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        pid: int | None = None,
    ) -> None:
        """
        Initialize the channel.

        Args:
            group: Netlink multicast group bitmask to subscribe to
            buffer_size: Maximum datagram size read in one call
            pid: Netlink port id to bind; defaults to the process id
        """
        self.group = group
        self.buffer_size = buffer_size
        self.pid = pid
        self._sock: socket.socket | None = None

    @property
    def is_open(self) -> bool:
        """Check if the socket is open."""
        return self._sock is not None

    def fileno(self) -> int:
        """Return the socket descriptor, or -1 when closed."""
        return self._sock.fileno() if self._sock is not None else -1

    def open(self) -> None:
        """
        Create and bind the netlink socket.

        Raises:
            ChannelError: If the channel is already open, or the socket
                cannot be created or bound.
        """
        if self._sock is not None:
            raise ChannelError("Channel is already open")

        try:
            sock = socket.socket(
                socket.AF_NETLINK, socket.SOCK_RAW, NETLINK_KOBJECT_UEVENT
            )
        except (OSError, AttributeError) as e:
            raise ChannelError(f"Failed to create netlink socket: {e}") from e

        pid = self.pid if self.pid is not None else os.getpid()
        try:
            sock.bind((pid, self.group))
        except OSError as e:
            sock.close()
            raise ChannelError(f"Failed to bind netlink socket: {e}") from e

        self._sock = sock
        logger.debug("Netlink socket bound (pid=%d, group=%d)", pid, self.group)

    def read_timeout(self, timeout: float) -> bytes | None:
        """
        Wait up to ``timeout`` seconds for one datagram.

        Interrupted waits are retried against the initial deadline.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            Datagram payload, or None if nothing arrived in time. Datagrams
            that did not fit in ``buffer_size`` are dropped with a warning.

        Raises:
            ReadError: If the channel is closed or the wait/receive fails.
        """
        if self._sock is None:
            raise ReadError("Channel is not open")

        deadline = time.monotonic() + timeout
        while True:
            remaining = max(0.0, deadline - time.monotonic())
            try:
                readable, _, _ = select.select([self._sock], [], [], remaining)
            except InterruptedError:
                continue
            except (OSError, ValueError) as e:
                raise ReadError(f"select failed: {e}") from e

            if not readable:
                return None

            try:
                data, _, flags, _ = self._sock.recvmsg(self.buffer_size)
            except (InterruptedError, BlockingIOError):
                continue
            except OSError as e:
                if e.errno == errno.ENOBUFS:
                    logger.warning("Kernel uevent queue overflowed, events were dropped")
                    return None
                raise ReadError(f"recv failed: {e}") from e

            if flags & socket.MSG_TRUNC:
                # The lost tail may hold fields the classifier needs
                logger.warning(
                    "Dropped uevent larger than the %d byte receive buffer",
                    self.buffer_size,
                )
                return None

            return data or None

    def close(self) -> None:
        """Close the socket. Safe to call when already closed."""
        if self._sock is None:
            return
        sock, self._sock = self._sock, None
        sock.close()
        logger.debug("Netlink socket closed")

    def __enter__(self) -> RawEventChannel:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
