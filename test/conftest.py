"""pytest configuration and fixtures for remotepad tests.

Provides:
- FakeStream: In-memory stream with scripted reads and recorded writes
- FakeTransport: Opens FakeStreams, optionally failing or blocking
- Controller fixtures wired to the fakes
- Markers for unit vs integration tests
"""

import queue
import threading
from collections.abc import Generator

import pytest

from controller.directory import PeerDirectory, static_peers
from controller.environment import EnvironmentSignals
from controller.machine import ConnectionStateMachine
from link.connection import ConnectionState, PeerDescriptor, TransportError

# Read timeout for fake streams, keeps monitor shutdown quick
FAKE_READ_POLL_S = 0.01

# Generous bound for waiting on background threads in tests
WAIT_S = 2.0


class FakeStream:
    """In-memory Stream.

    Reads return b"" until something is injected. end_stream() makes the
    next read report end of stream; fail_read() makes it raise.
    """

    def __init__(self) -> None:
        self._inbound: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self.writes: list[bytes] = []
        self.flushes = 0
        self.close_calls = 0
        self.closed = False
        self.write_error: Exception | None = None

    def read(self, size: int, /) -> bytes | None:
        if self.closed:
            return None
        try:
            item = self._inbound.get(timeout=FAKE_READ_POLL_S)
        except queue.Empty:
            return b""
        if isinstance(item, Exception):
            raise item
        return item if item is None else item[:size]

    def write(self, data: bytes, /) -> None:
        with self._lock:
            if self.closed:
                raise TransportError("Stream closed")
            if self.write_error is not None:
                raise self.write_error
            self.writes.append(bytes(data))

    def flush(self) -> None:
        self.flushes += 1

    def close(self) -> None:
        with self._lock:
            self.close_calls += 1
            self.closed = True

    @property
    def written(self) -> bytes:
        with self._lock:
            return b"".join(self.writes)

    def inject(self, data: bytes) -> None:
        """Queue inbound bytes as if sent by the peer."""
        self._inbound.put(data)

    def end_stream(self) -> None:
        self._inbound.put(None)

    def fail_read(self, error: Exception | None = None) -> None:
        self._inbound.put(error or TransportError("Connection reset by peer"))


class FakeTransport:
    """Transport that hands out FakeStreams.

    Set open_error to make open() raise, or hold gate to block open()
    until the test releases it.
    """

    def __init__(self) -> None:
        self.opened: list[PeerDescriptor] = []
        self.streams: list[FakeStream] = []
        self.open_error: Exception | None = None
        self.gate: threading.Event | None = None

    def open(self, peer: PeerDescriptor) -> FakeStream:
        self.opened.append(peer)
        if self.gate is not None:
            self.gate.wait(WAIT_S)
        if self.open_error is not None:
            raise self.open_error
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    @property
    def stream(self) -> FakeStream:
        """Most recently opened stream."""
        return self.streams[-1]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test (requires a pty)")


@pytest.fixture
def rover() -> PeerDescriptor:
    return PeerDescriptor(name="Rover", address="AA:BB")


@pytest.fixture
def stream() -> FakeStream:
    return FakeStream()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def environment() -> EnvironmentSignals:
    return EnvironmentSignals()


@pytest.fixture
def notifications() -> list[str]:
    return []


@pytest.fixture
def machine(
    transport: FakeTransport,
    environment: EnvironmentSignals,
    notifications: list[str],
    rover: PeerDescriptor,
) -> Generator[ConnectionStateMachine, None, None]:
    """Controller with one known peer ("Rover"), nothing selected yet."""
    m = ConnectionStateMachine(
        transport,
        PeerDirectory(static_peers(rover)),
        environment,
        notifier=notifications.append,
        monitor_join_timeout_s=WAIT_S,
    )
    m.resume().result(WAIT_S)
    yield m
    m.close(timeout=WAIT_S)


@pytest.fixture
def selected(machine: ConnectionStateMachine, rover: PeerDescriptor) -> ConnectionStateMachine:
    """Controller in DISCONNECTED with Rover selected."""
    machine.show_peers().result(WAIT_S)
    assert machine.select_peer(rover).result(WAIT_S) is True
    return machine


@pytest.fixture
def connected(
    selected: ConnectionStateMachine, transport: FakeTransport
) -> ConnectionStateMachine:
    """Controller in CONNECTED to Rover over a FakeStream."""
    selected.connect().result(WAIT_S)
    selected.wait_for(ConnectionState.CONNECTED, WAIT_S)
    return selected
