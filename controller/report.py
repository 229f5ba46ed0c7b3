"""Reporting abstractions for remotepad.

Contains:
- Report ABC: Base class for all reports
- StatusReport: Current controller state for the console
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from controller.machine import Snapshot
from link.connection import ConnectionState

_STATUS_TEXT = {
    ConnectionState.DISCONNECTED: "Disconnected",
    ConnectionState.CONNECTING: "Connecting...",
    ConnectionState.CONNECTED: "Connected",
    ConnectionState.PERMISSIONS_NEEDED: "Permissions needed",
    ConnectionState.ADAPTER_DISABLED: "Adapter disabled",
    ConnectionState.ADAPTER_UNSUPPORTED: "Adapter not supported",
    ConnectionState.PEER_NOT_FOUND: "Device not found",
    ConnectionState.SELECTING_PEER: "Select a device",
}


class Report(ABC):
    """Abstract base class for console reports."""

    @abstractmethod
    def print(self) -> None:
        """Print the report to stdout."""
        pass

    @abstractmethod
    def success(self) -> bool:
        """Return True if the report indicates success."""
        pass


@dataclass
class StatusReport(Report):
    """Status line, selected device and (while selecting) the peer list."""

    snapshot: Snapshot

    def lines(self) -> list[str]:
        snap = self.snapshot
        lines = [f"Status: {_STATUS_TEXT[snap.state]}"]

        if snap.selected is not None and snap.state is not ConnectionState.SELECTING_PEER:
            lines.append(f"Device: {snap.selected.display_name} ({snap.selected.address})")

        if snap.state is ConnectionState.SELECTING_PEER:
            if not snap.peers:
                lines.append("No paired devices found.")
            for index, peer in enumerate(snap.peers):
                lines.append(f"  [{index}] {peer.display_name} ({peer.address})")

        return lines

    def print(self) -> None:
        for line in self.lines():
            print(line)

    def success(self) -> bool:
        """Return True if connected."""
        return self.snapshot.state is ConnectionState.CONNECTED
