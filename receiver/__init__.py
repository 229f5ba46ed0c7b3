"""Receiver package for remotepad.

Contains the remote-device side of the link:
- commands: CommandParser (newline-delimited tokens -> Direction)
- runner: Receiver, run_receiver
- loopback: LoopbackDevice (pty pair for hardware-free runs)
"""

from receiver.commands import CommandParser
from receiver.loopback import LoopbackDevice
from receiver.runner import Receiver, run_receiver

__all__ = [
    "CommandParser",
    "LoopbackDevice",
    "Receiver",
    "run_receiver",
]
