"""Receiver runner for remotepad.

Contains run_receiver() which listens on a serial device (for example
/dev/rfcomm0 bound to an incoming RFCOMM link), prints each command it
receives, and reopens the device whenever the link drops.
"""

import logging
import signal
import threading
from collections.abc import Callable
from types import FrameType

from link.connection import PeerDescriptor, TransportError
from link.device import SerialTransport
from link.protocol import (
    DEFAULT_BAUDRATE,
    MONITOR_BUFFER_SIZE,
    RECEIVER_RETRY_DELAY_S,
    Direction,
    Stream,
    Transport,
)
from receiver.commands import CommandParser

logger = logging.getLogger(__name__)


class Receiver:
    """Reads commands from a device until stopped, reconnecting on loss."""

    def __init__(
        self,
        device: str,
        handler: Callable[[Direction], None],
        transport: Transport | None = None,
        retry_delay_s: float = RECEIVER_RETRY_DELAY_S,
    ) -> None:
        self.peer = PeerDescriptor(name=None, address=device)
        self._transport = transport if transport is not None else SerialTransport()
        self._parser = CommandParser(handler)
        self._retry_delay_s = retry_delay_s
        self._stop = threading.Event()
        self.sessions = 0

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        """Serve until stop() is called."""
        logger.info(f"Receiver started on {self.peer.address}")
        while not self._stop.is_set():
            try:
                stream = self._transport.open(self.peer)
            except TransportError as e:
                logger.warning(f"Device unavailable: {e}")
                self._stop.wait(self._retry_delay_s)
                continue

            self.sessions += 1
            logger.info(f"Receiver: link up on {self.peer.address}")
            try:
                self._serve(stream)
            finally:
                stream.close()
                self._parser.reset()

            if not self._stop.is_set():
                logger.info("Receiver: link down, waiting for next connection")
                self._stop.wait(self._retry_delay_s)

        logger.info("Receiver shutdown complete")

    def _serve(self, stream: Stream) -> None:
        while not self._stop.is_set():
            try:
                data = stream.read(MONITOR_BUFFER_SIZE)
            except TransportError as e:
                logger.warning(f"Receiver: read failed: {e}")
                return
            if data is None:
                return
            if data:
                self._parser.feed(data)


def print_command(direction: Direction) -> None:
    print(direction.value, flush=True)


def run_receiver(device: str, baudrate: int = DEFAULT_BAUDRATE) -> int:
    """Run the receiver in the foreground until SIGINT/SIGTERM. Returns 0."""
    receiver = Receiver(device, print_command, transport=SerialTransport(baudrate))

    def handle_signal(_sig: int, _frame: FrameType | None) -> None:
        logger.info("Signal received - shutting down")
        receiver.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    receiver.run()
    return 0
