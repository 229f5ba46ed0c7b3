"""Unit tests for the receiver side: command parsing and the serve loop."""

import threading
import time

import pytest

from link.connection import TransportError
from link.protocol import Direction
from receiver.commands import MAX_LINE_LENGTH, CommandParser
from receiver.runner import Receiver

WAIT_S = 2.0


def eventually(predicate, timeout: float = WAIT_S) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.mark.unit
class TestCommandParser:
    """Tests for CommandParser."""

    def test_whole_lines(self) -> None:
        got: list[Direction] = []
        parser = CommandParser(got.append)
        assert parser.feed(b"up\ndown\n") == [Direction.UP, Direction.DOWN]
        assert got == [Direction.UP, Direction.DOWN]

    def test_split_across_chunks(self) -> None:
        got: list[Direction] = []
        parser = CommandParser(got.append)
        assert parser.feed(b"le") == []
        assert parser.feed(b"ft\nri") == [Direction.LEFT]
        assert parser.feed(b"ght\n") == [Direction.RIGHT]
        assert got == [Direction.LEFT, Direction.RIGHT]

    def test_case_and_crlf(self) -> None:
        parser = CommandParser(lambda d: None)
        assert parser.feed(b"UP\r\nRight\r\n") == [Direction.UP, Direction.RIGHT]

    def test_unknown_lines_ignored(self) -> None:
        parser = CommandParser(lambda d: None)
        assert parser.feed(b"jump\nup\n\n") == [Direction.UP]
        assert parser.ignored == 1

    def test_overlong_line_discarded(self) -> None:
        parser = CommandParser(lambda d: None)
        parser.feed(b"x" * (MAX_LINE_LENGTH + 1))
        assert parser.ignored == 1
        assert parser.feed(b"down\n") == [Direction.DOWN]

    def test_reset_drops_partial(self) -> None:
        parser = CommandParser(lambda d: None)
        parser.feed(b"do")
        parser.reset()
        assert parser.feed(b"wn\nup\n") == [Direction.UP]


@pytest.mark.unit
class TestReceiver:
    """Tests for the Receiver serve loop over a fake transport."""

    def _start(self, receiver: Receiver) -> threading.Thread:
        thread = threading.Thread(target=receiver.run, daemon=True)
        thread.start()
        return thread

    def test_prints_commands(self, transport) -> None:
        got: list[Direction] = []
        receiver = Receiver("/dev/rfcomm0", got.append, transport=transport, retry_delay_s=0.01)
        thread = self._start(receiver)

        assert eventually(lambda: len(transport.streams) == 1)
        transport.stream.inject(b"up\nle")
        transport.stream.inject(b"ft\n")
        assert eventually(lambda: got == [Direction.UP, Direction.LEFT])

        receiver.stop()
        thread.join(WAIT_S)
        assert not thread.is_alive()
        assert transport.stream.closed
        assert transport.opened[0].address == "/dev/rfcomm0"

    def test_reopens_after_loss(self, transport) -> None:
        receiver = Receiver("/dev/rfcomm0", lambda d: None, transport=transport, retry_delay_s=0.01)
        thread = self._start(receiver)

        assert eventually(lambda: len(transport.streams) == 1)
        first = transport.stream
        first.end_stream()
        assert eventually(lambda: len(transport.streams) == 2)
        assert first.closed

        transport.stream.fail_read()
        assert eventually(lambda: receiver.sessions >= 3)

        receiver.stop()
        thread.join(WAIT_S)
        assert not receiver.running

    def test_retries_unavailable_device(self, transport) -> None:
        transport.open_error = TransportError("No such file or directory")
        receiver = Receiver("/dev/rfcomm0", lambda d: None, transport=transport, retry_delay_s=0.01)
        thread = self._start(receiver)

        assert eventually(lambda: len(transport.opened) >= 3)
        assert receiver.sessions == 0

        transport.open_error = None
        assert eventually(lambda: receiver.sessions == 1)

        receiver.stop()
        thread.join(WAIT_S)
        assert not thread.is_alive()
