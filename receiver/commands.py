"""Inbound command parsing for the remotepad receiver.

Bytes arrive in arbitrary chunks; complete newline-terminated lines are
decoded into Directions and anything unrecognised is skipped.
"""

import logging
from collections.abc import Callable

from link.connection import EncodingError
from link.encoding import decode_command
from link.protocol import COMMAND_TERMINATOR, Direction

logger = logging.getLogger(__name__)

# Longest partial line kept while waiting for a terminator
MAX_LINE_LENGTH = 256


class CommandParser:
    """Splits a byte stream into lines and hands known commands to a handler."""

    def __init__(self, handler: Callable[[Direction], None]) -> None:
        self._handler = handler
        self._pending = b""
        self.ignored = 0

    def feed(self, data: bytes) -> list[Direction]:
        """Consume a chunk of bytes. Returns the commands it completed."""
        self._pending += data
        *lines, self._pending = self._pending.split(COMMAND_TERMINATOR)

        if len(self._pending) > MAX_LINE_LENGTH:
            logger.warning(f"Discarding {len(self._pending)} bytes without a line terminator")
            self._pending = b""
            self.ignored += 1

        commands = []
        for line in lines:
            if not line.strip():
                continue
            try:
                direction = decode_command(line)
            except EncodingError as e:
                logger.debug(f"Ignoring line: {e}")
                self.ignored += 1
                continue
            commands.append(direction)
            self._handler(direction)
        return commands

    def reset(self) -> None:
        """Drop any partial line (e.g. after the link drops)."""
        self._pending = b""
