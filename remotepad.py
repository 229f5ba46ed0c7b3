#!/usr/bin/env python3
"""Directional remote control over a serial or RFCOMM link."""

import argparse
import logging
import sys
from collections.abc import Iterable
from enum import IntEnum
from typing import TextIO

from controller.directory import PeerDirectory, static_peers
from controller.machine import ConnectionStateMachine
from controller.report import StatusReport
from link.connection import PeerDescriptor
from link.device import SerialTransport, serial_port_peers
from link.encoding import parse_direction
from link.protocol import DEFAULT_BAUDRATE, DEFAULT_RFCOMM_CHANNEL, Transport
from link.rfcomm import RfcommTransport, rfcomm_supported
from receiver.loopback import LoopbackDevice
from receiver.runner import run_receiver

logger = logging.getLogger(__name__)

# How long console commands wait for the controller to handle them
COMMAND_TIMEOUT_S = 5.0

HELP_TEXT = """\
Commands:
  peers            list devices and enter selection
  select N         select device N from the list
  connect          connect to the selected device
  disconnect       close the connection
  up|down|left|right  send a direction
  status           show current status
  quit             exit
"""


class ExitCode(IntEnum):
    """Exit codes for remotepad."""

    SUCCESS = 0
    DEVICE_ERROR = 1
    USAGE = 2


def print_notification(message: str) -> None:
    logger.info(message)
    print(f"* {message}", flush=True)


def _print_status(machine: ConnectionStateMachine, out: TextIO) -> None:
    for line in StatusReport(machine.snapshot()).lines():
        print(line, file=out)


def _select(machine: ConnectionStateMachine, arg: str, out: TextIO) -> None:
    try:
        index = int(arg)
    except ValueError:
        print(f"Not a device number: {arg!r}", file=out)
        return

    machine.show_peers().result(COMMAND_TIMEOUT_S)
    peers = machine.snapshot().peers
    if not 0 <= index < len(peers):
        print(f"No device {index} ({len(peers)} listed)", file=out)
        return
    machine.select_peer(peers[index]).result(COMMAND_TIMEOUT_S)


def run_console(
    machine: ConnectionStateMachine,
    lines: Iterable[str],
    out: TextIO | None = None,
) -> int:
    """Run console commands against the controller until quit or EOF."""
    out = out or sys.stdout
    print(HELP_TEXT, file=out)
    for raw in lines:
        words = raw.strip().split()
        if not words:
            continue
        cmd, args = words[0].lower(), words[1:]

        direction = parse_direction(cmd)
        if direction is not None:
            machine.send(direction).result(COMMAND_TIMEOUT_S)
        elif cmd == "peers":
            machine.show_peers().result(COMMAND_TIMEOUT_S)
            _print_status(machine, out)
        elif cmd == "select" and len(args) == 1:
            _select(machine, args[0], out)
        elif cmd == "connect":
            machine.connect().result(COMMAND_TIMEOUT_S)
        elif cmd == "disconnect":
            machine.disconnect().result(COMMAND_TIMEOUT_S)
        elif cmd == "status":
            _print_status(machine, out)
        elif cmd in ("quit", "exit"):
            break
        else:
            print(f"Unknown command: {raw.strip()!r}", file=out)
            print(HELP_TEXT, file=out)
    return ExitCode.SUCCESS


def run_controller(transport: Transport, directory: PeerDirectory) -> int:
    """Run the interactive controller on stdin. Returns exit code."""
    with ConnectionStateMachine(transport, directory, notifier=print_notification) as machine:
        try:
            return run_console(machine, sys.stdin)
        except KeyboardInterrupt:
            return ExitCode.SUCCESS


def run_loopback(baudrate: int) -> int:
    """Run the controller against an in-process pty receiver."""
    try:
        device = LoopbackDevice(handler=lambda d: logger.info(f"Loopback received: {d.value}"))
    except (RuntimeError, OSError) as e:
        logger.error(f"Failed to create loopback device: {e}")
        return ExitCode.DEVICE_ERROR

    try:
        return run_controller(SerialTransport(baudrate), PeerDirectory(static_peers(device.peer)))
    finally:
        device.close()


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add baudrate and verbosity arguments to a parser."""
    parser.add_argument(
        "-b",
        "--baudrate",
        type=int,
        default=DEFAULT_BAUDRATE,
        help=f"Baud rate (default: {DEFAULT_BAUDRATE})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Send directional commands to a remote device",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s controller                       Pick from local serial ports
  %(prog)s controller -d /dev/rfcomm0       Control a bound RFCOMM device
  %(prog)s controller -a 00:11:22:33:44:55  Connect over an RFCOMM socket
  %(prog)s receiver -d /dev/rfcomm0         Print commands arriving on a device
  %(prog)s loopback                         Try it out against a pty
""",
    )
    subparsers = parser.add_subparsers(dest="mode")

    controller_parser = subparsers.add_parser("controller", help="Interactive controller")
    target = controller_parser.add_mutually_exclusive_group()
    target.add_argument("-d", "--device", type=str, help="Serial device path (e.g., /dev/rfcomm0)")
    target.add_argument("-a", "--address", type=str, help="Bluetooth address for an RFCOMM socket")
    controller_parser.add_argument(
        "-c",
        "--channel",
        type=int,
        default=DEFAULT_RFCOMM_CHANNEL,
        help=f"RFCOMM channel (default: {DEFAULT_RFCOMM_CHANNEL})",
    )
    controller_parser.add_argument("-n", "--name", type=str, help="Display name for the device")
    _add_common_args(controller_parser)

    receiver_parser = subparsers.add_parser("receiver", help="Print commands received on a device")
    receiver_parser.add_argument("-d", "--device", type=str, required=True, help="Serial device path")
    _add_common_args(receiver_parser)

    loopback_parser = subparsers.add_parser("loopback", help="Controller against a pty receiver")
    _add_common_args(loopback_parser)

    args = parser.parse_args(argv)
    if args.mode is None:
        parser.print_help()
        return ExitCode.USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.mode == "receiver":
        return run_receiver(args.device, args.baudrate)

    if args.mode == "loopback":
        return run_loopback(args.baudrate)

    if args.address:
        if not rfcomm_supported():
            logger.error("Bluetooth sockets are not available on this platform")
            return ExitCode.DEVICE_ERROR
        peer = PeerDescriptor(name=args.name, address=args.address)
        return run_controller(RfcommTransport(args.channel), PeerDirectory(static_peers(peer)))

    transport = SerialTransport(args.baudrate)
    if args.device:
        peer = PeerDescriptor(name=args.name, address=args.device)
        return run_controller(transport, PeerDirectory(static_peers(peer)))
    return run_controller(transport, PeerDirectory(serial_port_peers))


if __name__ == "__main__":
    sys.exit(main())
