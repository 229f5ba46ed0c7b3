"""Command encoding/decoding for remotepad.

Commands are the lowercase ASCII name of a Direction followed by a
single newline. There is no length prefix or checksum.
"""

from link.connection import EncodingError
from link.protocol import COMMAND_TERMINATOR, Direction

_ENCODING = "ascii"


def encode_command(direction: Direction) -> bytes:
    """Encode a direction as its wire token, e.g. b"up\\n"."""
    return direction.value.encode(_ENCODING) + COMMAND_TERMINATOR


def decode_command(line: bytes) -> Direction:
    """Decode one line from the wire into a Direction.

    Surrounding whitespace (including the terminator and a stray CR) is
    ignored and matching is case-insensitive.

    Raises:
        EncodingError: If the line is not valid ASCII or not a known command.
    """
    try:
        token = line.decode(_ENCODING).strip().lower()
    except UnicodeDecodeError:
        raise EncodingError(f"Non-ASCII command: {line!r}")
    try:
        return Direction(token)
    except ValueError:
        raise EncodingError(f"Unknown command: {token!r}")


def parse_direction(text: str) -> Direction | None:
    """Parse user input into a Direction, or None if it is not one."""
    try:
        return Direction(text.strip().lower())
    except ValueError:
        return None
