"""Serial device transport for remotepad.

Contains:
- log_device_info: Log information about a serial device
- serial_port_peers: Enumerate serial ports as peer descriptors
- SerialStream: Stream over an open pyserial port
- SerialTransport: Opens SerialStreams on a peer's device path

RFCOMM links bound with `rfcomm bind` show up as /dev/rfcommN and are
opened here like any other serial device.
"""

import logging
import os

import serial
import serial.tools.list_ports

from link.connection import PeerDescriptor, TransportError
from link.protocol import DEFAULT_BAUDRATE, READ_POLL_S, TRACE, WRITE_TIMEOUT_S

logger = logging.getLogger(__name__)


def log_device_info(device: str) -> None:
    """Log information about a serial device."""
    real_path = os.path.realpath(device)
    if real_path.startswith("/dev/pts/"):
        logger.info(f"Device: {device} -> {real_path} (pty)")
        return

    ports = [p for p in serial.tools.list_ports.comports() if p.device == device]
    if len(ports) == 0:
        logger.info(f"Device: {device} (not in port list)")
        return

    info = ports[0]
    logger.info(f"Device: {info.device}")
    logger.info(f"Description: {info.description}")
    if info.vid is not None:
        logger.info(f"VID:PID: {info.vid:04x}:{info.pid:04x}")


def serial_port_peers() -> list[PeerDescriptor]:
    """List the serial ports on this machine as peers, in enumeration order."""
    peers = []
    for info in serial.tools.list_ports.comports():
        # pyserial reports "n/a" when it has no description
        name = info.description if info.description and info.description != "n/a" else None
        peers.append(PeerDescriptor(name=name, address=info.device, handle=info))
    return peers


class SerialStream:
    """Stream over an open pyserial port."""

    def __init__(self, ser: serial.Serial) -> None:
        self._serial = ser

    @property
    def name(self) -> str:
        return self._serial.name or ""

    def read(self, size: int, /) -> bytes | None:
        if not self._serial.is_open:
            return None
        try:
            data = self._serial.read(size)
        except serial.SerialException as e:
            raise TransportError(f"Read failed on {self.name}: {e}") from e
        if data:
            logger.log(TRACE, f"Read {len(data)} bytes from {self.name}")
        return data

    def write(self, data: bytes, /) -> None:
        try:
            self._serial.write(data)
        except serial.SerialException as e:
            raise TransportError(f"Write failed on {self.name}: {e}") from e
        logger.log(TRACE, f"Wrote {len(data)} bytes to {self.name}")

    def flush(self) -> None:
        try:
            self._serial.flush()
        except serial.SerialException as e:
            raise TransportError(f"Flush failed on {self.name}: {e}") from e

    def close(self) -> None:
        if not self._serial.is_open:
            return
        try:
            self._serial.close()
            logger.info(f"Closed {self.name}")
        except (serial.SerialException, OSError) as e:
            logger.debug(f"Ignoring error closing {self.name}: {e}")


class SerialTransport:
    """Opens a serial device named by the peer's address."""

    def __init__(self, baudrate: int = DEFAULT_BAUDRATE, rtscts: bool = False) -> None:
        self.baudrate = baudrate
        self.rtscts = rtscts

    def open(self, peer: PeerDescriptor) -> SerialStream:
        log_device_info(peer.address)
        try:
            ser = serial.Serial(
                port=peer.address,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=self.rtscts,
                timeout=READ_POLL_S,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Failed to open {peer.address}: {e}") from e
        logger.debug(f"Serial port: baudrate={ser.baudrate}, rtscts={ser.rtscts}")
        return SerialStream(ser)
