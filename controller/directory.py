"""Peer directory for remotepad.

Holds the peers last reported by an enumeration function. Each refresh
replaces the whole list; entries are never patched in place.
"""

import logging
from collections.abc import Callable, Iterable, Iterator

from link.connection import PeerDescriptor
from link.device import serial_port_peers

logger = logging.getLogger(__name__)

PeerEnumerator = Callable[[], Iterable[PeerDescriptor]]


def static_peers(*peers: PeerDescriptor) -> PeerEnumerator:
    """Enumerator that always reports the given peers."""
    fixed = tuple(peers)

    def enumerate_peers() -> tuple[PeerDescriptor, ...]:
        return fixed

    return enumerate_peers


class PeerDirectory:
    """Ordered, replace-on-refresh list of known peers."""

    def __init__(self, enumerate_peers: PeerEnumerator = serial_port_peers) -> None:
        self._enumerate_peers = enumerate_peers
        self._peers: tuple[PeerDescriptor, ...] = ()

    @property
    def peers(self) -> tuple[PeerDescriptor, ...]:
        return self._peers

    def refresh(self) -> tuple[PeerDescriptor, ...]:
        """Re-enumerate peers, replacing the current list.

        If enumeration raises, the previous list is kept and the error
        propagates to the caller.
        """
        peers = tuple(self._enumerate_peers())
        self._peers = peers
        logger.debug(f"Directory refreshed: {len(peers)} peer(s)")
        return peers

    def find(self, address: str) -> PeerDescriptor | None:
        """Return the peer with this address, or None."""
        for peer in self._peers:
            if peer.address == address:
                return peer
        return None

    def __iter__(self) -> Iterator[PeerDescriptor]:
        return iter(self._peers)

    def __len__(self) -> int:
        return len(self._peers)
