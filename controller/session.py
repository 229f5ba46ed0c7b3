"""Transport session for remotepad.

A TransportSession exists exactly while the controller is CONNECTING or
CONNECTED. It bundles the open stream and its link monitor so both are
always released together.
"""

import logging
from dataclasses import dataclass

from link.connection import PeerDescriptor
from link.monitor import LinkMonitor
from link.protocol import MONITOR_JOIN_TIMEOUT_S, Stream

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TransportSession:
    """Stream, monitor and peer for one connect attempt.

    The stream and monitor are attached once the transport has opened;
    until then the session only records the peer being connected to.
    """

    peer: PeerDescriptor
    stream: Stream | None = None
    monitor: LinkMonitor | None = None
    released: bool = False

    @property
    def live(self) -> bool:
        """True while the stream is open and its monitor has not been cancelled."""
        return (
            not self.released
            and self.stream is not None
            and self.monitor is not None
            and not self.monitor.cancelled
        )

    def attach(self, stream: Stream, monitor: LinkMonitor) -> None:
        self.stream = stream
        self.monitor = monitor

    def release(self, join_timeout_s: float = MONITOR_JOIN_TIMEOUT_S) -> None:
        """Stop the monitor, close the stream and drop both handles.

        Safe to call repeatedly and on a session that never opened.
        """
        if self.released:
            return
        self.released = True

        monitor, self.monitor = self.monitor, None
        if monitor is not None:
            monitor.cancel()
            if not monitor.join(join_timeout_s):
                logger.warning(
                    f"Link monitor for {self.peer.address} did not stop within "
                    f"{join_timeout_s}s, abandoning it"
                )

        stream, self.stream = self.stream, None
        if stream is not None:
            stream.close()

        logger.debug(f"Released session for {self.peer.address}")
