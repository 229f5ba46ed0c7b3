"""Connection state and peer dataclasses for remotepad.

Contains:
- ConnectionState: Enum for the controller lifecycle
- PeerDescriptor: A candidate remote device
- TransportError: Exception for open/read/write failures
- EncodingError: Exception for malformed command tokens
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UNKNOWN_PEER_NAME = "Unknown"


class ConnectionState(Enum):
    """Lifecycle state of the controller. Exactly one is current."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PERMISSIONS_NEEDED = "permissions_needed"
    ADAPTER_DISABLED = "adapter_disabled"
    ADAPTER_UNSUPPORTED = "adapter_unsupported"
    PEER_NOT_FOUND = "peer_not_found"
    SELECTING_PEER = "selecting_peer"


# States in which a transport session exists
ACTIVE_STATES = frozenset({ConnectionState.CONNECTING, ConnectionState.CONNECTED})


class TransportError(Exception):
    """Raised when a transport open, read or write fails."""

    pass


class EncodingError(Exception):
    """Raised when a received token is not a known command."""

    pass


@dataclass(frozen=True)
class PeerDescriptor:
    """A remote device that can be selected and connected to.

    Identity is the address; the name is optional and the handle is an
    opaque platform object (e.g. a pyserial ListPortInfo).
    """

    name: str | None = field(compare=False)
    address: str
    handle: Any = field(default=None, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        """Name for presentation, falling back to "Unknown"."""
        return self.name if self.name else UNKNOWN_PEER_NAME

    @property
    def label(self) -> str:
        """Name if known, otherwise the address."""
        return self.name if self.name else self.address
