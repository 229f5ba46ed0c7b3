"""Link layer for remotepad.

This package contains the byte-stream side of the controller:
- protocol: Direction enum, Stream/Transport Protocols, timing constants
- connection: ConnectionState, PeerDescriptor, exceptions
- encoding: Command token encoding/decoding
- device: pyserial transport and serial port enumeration
- rfcomm: Bluetooth RFCOMM socket transport
- monitor: Background link-loss detection
"""

from link.connection import (
    ACTIVE_STATES,
    ConnectionState,
    EncodingError,
    PeerDescriptor,
    TransportError,
)
from link.encoding import decode_command, encode_command
from link.protocol import (
    DEFAULT_BAUDRATE,
    MONITOR_BUFFER_SIZE,
    MONITOR_JOIN_TIMEOUT_S,
    READ_POLL_S,
    TRACE,
    Direction,
    Stream,
    Transport,
)

__all__ = [
    # Protocol
    "Direction",
    "Stream",
    "Transport",
    "DEFAULT_BAUDRATE",
    "MONITOR_BUFFER_SIZE",
    "MONITOR_JOIN_TIMEOUT_S",
    "READ_POLL_S",
    "TRACE",
    # Connection
    "ACTIVE_STATES",
    "ConnectionState",
    "PeerDescriptor",
    # Encoding
    "encode_command",
    "decode_command",
    # Exceptions
    "EncodingError",
    "TransportError",
]
