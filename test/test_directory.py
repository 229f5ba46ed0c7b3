"""Unit tests for the peer directory and peer enumeration."""

from types import SimpleNamespace

import pytest
import serial.tools.list_ports

from controller.directory import PeerDirectory, static_peers
from link.connection import PeerDescriptor
from link.device import serial_port_peers
from link.rfcomm import RfcommTransport

ROVER = PeerDescriptor(name="Rover", address="AA:BB")
LAMP = PeerDescriptor(name=None, address="CC:DD")


@pytest.mark.unit
class TestPeerDirectory:
    """Tests for PeerDirectory."""

    def test_empty_until_refresh(self) -> None:
        directory = PeerDirectory(static_peers(ROVER))
        assert directory.peers == ()
        assert len(directory) == 0

    def test_refresh_keeps_order(self) -> None:
        directory = PeerDirectory(static_peers(LAMP, ROVER))
        assert directory.refresh() == (LAMP, ROVER)
        assert list(directory) == [LAMP, ROVER]

    def test_refresh_replaces(self) -> None:
        current = [ROVER]
        directory = PeerDirectory(lambda: list(current))
        directory.refresh()

        current[:] = [LAMP]
        directory.refresh()

        assert directory.peers == (LAMP,)
        assert directory.find(ROVER.address) is None

    def test_find(self) -> None:
        directory = PeerDirectory(static_peers(ROVER, LAMP))
        directory.refresh()
        assert directory.find("CC:DD") is LAMP
        assert directory.find("EE:FF") is None

    def test_failed_refresh_keeps_previous(self) -> None:
        calls = []

        def enumerate_peers() -> list[PeerDescriptor]:
            calls.append(True)
            if len(calls) > 1:
                raise OSError("adapter busy")
            return [ROVER]

        directory = PeerDirectory(enumerate_peers)
        directory.refresh()

        with pytest.raises(OSError):
            directory.refresh()
        assert directory.peers == (ROVER,)


@pytest.mark.unit
class TestSerialPortPeers:
    """Tests for serial port enumeration."""

    def test_ports_become_peers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        ports = [
            SimpleNamespace(device="/dev/rfcomm0", description="Rover"),
            SimpleNamespace(device="/dev/ttyS0", description="n/a"),
            SimpleNamespace(device="/dev/ttyUSB0", description=""),
        ]
        monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: ports)

        peers = serial_port_peers()

        assert [p.address for p in peers] == ["/dev/rfcomm0", "/dev/ttyS0", "/dev/ttyUSB0"]
        assert [p.name for p in peers] == ["Rover", None, None]
        assert peers[0].handle is ports[0]
        assert peers[1].display_name == "Unknown"

    def test_no_ports(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: [])
        assert serial_port_peers() == []


@pytest.mark.unit
class TestRfcommTransport:
    """Tests for RFCOMM transport configuration."""

    @pytest.mark.parametrize("channel", [0, 31, -1])
    def test_invalid_channel(self, channel: int) -> None:
        with pytest.raises(ValueError):
            RfcommTransport(channel)

    def test_valid_channel(self) -> None:
        assert RfcommTransport(3).channel == 3
