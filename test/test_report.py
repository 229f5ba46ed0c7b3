"""Unit tests for console status reports."""

import pytest

from controller.machine import Snapshot
from controller.report import StatusReport
from link.connection import ConnectionState, PeerDescriptor

ROVER = PeerDescriptor(name="Rover", address="AA:BB")
NAMELESS = PeerDescriptor(name=None, address="CC:DD")


@pytest.mark.unit
class TestStatusReport:
    """Tests for StatusReport."""

    def test_disconnected_without_selection(self) -> None:
        report = StatusReport(Snapshot(ConnectionState.DISCONNECTED, (ROVER,), None))
        assert report.lines() == ["Status: Disconnected"]
        assert not report.success()

    def test_connected(self) -> None:
        report = StatusReport(Snapshot(ConnectionState.CONNECTED, (ROVER,), ROVER, session_open=True))
        assert report.lines() == ["Status: Connected", "Device: Rover (AA:BB)"]
        assert report.success()

    def test_unknown_name(self) -> None:
        report = StatusReport(Snapshot(ConnectionState.CONNECTING, (NAMELESS,), NAMELESS, session_open=True))
        assert "Device: Unknown (CC:DD)" in report.lines()

    def test_selecting_lists_peers(self) -> None:
        report = StatusReport(Snapshot(ConnectionState.SELECTING_PEER, (ROVER, NAMELESS), ROVER))
        assert report.lines() == [
            "Status: Select a device",
            "  [0] Rover (AA:BB)",
            "  [1] Unknown (CC:DD)",
        ]

    def test_selecting_empty(self) -> None:
        report = StatusReport(Snapshot(ConnectionState.SELECTING_PEER, (), None))
        assert report.lines() == ["Status: Select a device", "No paired devices found."]

    @pytest.mark.parametrize("state", list(ConnectionState))
    def test_every_state_has_text(self, state: ConnectionState) -> None:
        lines = StatusReport(Snapshot(state, (), None)).lines()
        assert lines[0].startswith("Status: ")

    def test_print(self, capsys: pytest.CaptureFixture[str]) -> None:
        StatusReport(Snapshot(ConnectionState.PEER_NOT_FOUND, (), ROVER)).print()
        out = capsys.readouterr().out
        assert "Status: Device not found" in out
        assert "Device: Rover (AA:BB)" in out
