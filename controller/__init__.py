"""Controller package for remotepad.

Contains the connection lifecycle and its collaborators:
- machine: ConnectionStateMachine, Snapshot
- session: TransportSession (stream + monitor, released together)
- dispatcher: CommandDispatcher
- directory: PeerDirectory, static_peers
- environment: EnvironmentSignals
- report: StatusReport for the console
"""

from controller.directory import PeerDirectory, static_peers
from controller.dispatcher import CommandDispatcher
from controller.environment import EnvironmentSignals
from controller.machine import (
    ConnectionStateMachine,
    MachineClosedError,
    Snapshot,
    log_notifier,
)
from controller.session import TransportSession

__all__ = [
    "ConnectionStateMachine",
    "CommandDispatcher",
    "EnvironmentSignals",
    "MachineClosedError",
    "PeerDirectory",
    "Snapshot",
    "TransportSession",
    "log_notifier",
    "static_peers",
]
