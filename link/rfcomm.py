"""RFCOMM socket transport for remotepad (Linux/BlueZ only)."""

import logging
import socket

from link.connection import PeerDescriptor, TransportError
from link.protocol import DEFAULT_RFCOMM_CHANNEL, READ_POLL_S, TRACE

logger = logging.getLogger(__name__)


def rfcomm_supported() -> bool:
    """Return True if this Python was built with Bluetooth socket support."""
    return hasattr(socket, "AF_BLUETOOTH") and hasattr(socket, "BTPROTO_RFCOMM")


class RfcommStream:
    """Stream over a connected RFCOMM socket."""

    def __init__(self, sock: socket.socket, address: str) -> None:
        self._sock = sock
        self._address = address
        self._closed = False

    def read(self, size: int, /) -> bytes | None:
        if self._closed:
            return None
        try:
            data = self._sock.recv(size)
        except socket.timeout:
            return b""
        except OSError as e:
            raise TransportError(f"Read failed on {self._address}: {e}") from e
        if not data:
            return None
        logger.log(TRACE, f"Read {len(data)} bytes from {self._address}")
        return data

    def write(self, data: bytes, /) -> None:
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Write failed on {self._address}: {e}") from e
        logger.log(TRACE, f"Wrote {len(data)} bytes to {self._address}")

    def flush(self) -> None:
        # sendall() returns only once the kernel has the data
        pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
            logger.info(f"Closed RFCOMM link to {self._address}")
        except OSError as e:
            logger.debug(f"Ignoring error closing {self._address}: {e}")


class RfcommTransport:
    """Connects an RFCOMM stream socket to the peer's Bluetooth address."""

    def __init__(self, channel: int = DEFAULT_RFCOMM_CHANNEL) -> None:
        if channel <= 0 or channel > 30:
            raise ValueError("RFCOMM channel must be between 1 and 30")
        self.channel = channel

    def open(self, peer: PeerDescriptor) -> RfcommStream:
        if not rfcomm_supported():
            raise TransportError("Bluetooth sockets are not available on this platform")

        try:
            sock = socket.socket(socket.AF_BLUETOOTH, socket.SOCK_STREAM, socket.BTPROTO_RFCOMM)
        except OSError as e:
            raise TransportError(f"Failed to allocate RFCOMM socket: {e}") from e

        try:
            # connect() blocks with no timeout of its own
            sock.connect((peer.address, self.channel))
            sock.settimeout(READ_POLL_S)
        except OSError as e:
            sock.close()
            raise TransportError(f"Failed to connect to {peer.address}: {e}") from e

        logger.info(f"RFCOMM connected to {peer.address} (channel {self.channel})")
        return RfcommStream(sock, peer.address)
