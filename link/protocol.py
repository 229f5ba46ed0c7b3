"""Protocol definitions for remotepad.

Contains:
- Direction enum for the commands the remote device understands
- Stream and Transport Protocols for type checking
- Timing and buffer constants (configurable via envvars)
- Logging configuration
"""

import logging
import os
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from link.connection import PeerDescriptor

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class Direction(Enum):
    """Directional commands sent to the remote device."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class Stream(Protocol):
    """Protocol for an open duplex byte stream.

    read() returns None on end of stream and b"" when nothing arrived
    within the poll interval. read/write/flush raise TransportError on
    I/O failure. close() never raises and may be called repeatedly.
    """

    def read(self, size: int, /) -> bytes | None: ...
    def write(self, data: bytes, /) -> None: ...
    def flush(self) -> None: ...
    def close(self) -> None: ...


class Transport(Protocol):
    """Protocol for opening a stream to a peer."""

    def open(self, peer: "PeerDescriptor") -> Stream: ...


# Line terminator for commands on the wire
COMMAND_TERMINATOR = b"\n"

# Scratch buffer used by the link monitor (contents are discarded)
MONITOR_BUFFER_SIZE = 1024

# Default serial settings
DEFAULT_BAUDRATE = int(os.environ.get("REMOTEPAD_BAUDRATE", "9600"))
WRITE_TIMEOUT_S = 1.0

# Bound on each blocking read so cancellation is observed between reads
READ_POLL_S = float(os.environ.get("REMOTEPAD_READ_POLL_S", "0.1"))

# How long teardown waits for the monitor to acknowledge cancellation
MONITOR_JOIN_TIMEOUT_S = float(os.environ.get("REMOTEPAD_MONITOR_JOIN_S", "1.0"))

# Serial Port Profile channel used by most RFCOMM peripherals
DEFAULT_RFCOMM_CHANNEL = int(os.environ.get("REMOTEPAD_RFCOMM_CHANNEL", "1"))

# Receiver waits this long before reopening a dropped device
RECEIVER_RETRY_DELAY_S = 1.0
