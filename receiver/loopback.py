"""Virtual remote device using a pty pair.

The controller opens the pty's slave path like any serial device; this
side reads the master end and decodes commands, so the whole controller
can run without hardware. Closing the device makes the controller's
reads fail, which looks exactly like a dropped link.
"""

import logging
import os
import pty
import select
import sys
import threading
from collections.abc import Callable

from link.connection import PeerDescriptor
from link.protocol import MONITOR_BUFFER_SIZE, READ_POLL_S, Direction
from receiver.commands import CommandParser

logger = logging.getLogger(__name__)


class LoopbackDevice:
    """Pty-backed remote that records every command it receives."""

    def __init__(self, handler: Callable[[Direction], None] | None = None) -> None:
        if sys.platform not in ("linux", "darwin"):
            raise RuntimeError(
                f"Loopback mode only supported on Linux/macOS, not {sys.platform}"
            )
        self._master_fd, self._slave_fd = pty.openpty()
        self.device = os.ttyname(self._slave_fd)
        self.received: list[Direction] = []
        self.raw = bytearray()
        self._handler = handler
        self._parser = CommandParser(self._on_command)
        self._lock = threading.Lock()
        self._running = True
        self._reader = threading.Thread(target=self._read_loop, name="loopback-reader", daemon=True)
        self._reader.start()
        logger.info(f"Loopback pty: {self.device}")

    @property
    def peer(self) -> PeerDescriptor:
        return PeerDescriptor(name="Loopback", address=self.device)

    def commands(self) -> list[Direction]:
        with self._lock:
            return list(self.received)

    def _on_command(self, direction: Direction) -> None:
        with self._lock:
            self.received.append(direction)
        if self._handler is not None:
            self._handler(direction)

    def _read_loop(self) -> None:
        while self._running:
            try:
                ready, _, _ = select.select([self._master_fd], [], [], READ_POLL_S)
                if not ready:
                    continue
                data = os.read(self._master_fd, MONITOR_BUFFER_SIZE)
            except (OSError, ValueError):
                break
            if not data:
                break
            with self._lock:
                self.raw.extend(data)
            self._parser.feed(data)

    def close(self) -> None:
        if not self._running:
            return
        self._running = False
        self._reader.join(timeout=1.0)
        os.close(self._master_fd)
        os.close(self._slave_fd)
        logger.info("Closed loopback device")
