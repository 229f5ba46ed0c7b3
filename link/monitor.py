"""Link monitor for remotepad.

Detects silent loss of an open stream by reading from it continuously.
Inbound bytes are discarded; they only prove the link is alive.
"""

import logging
import threading
from collections.abc import Callable

from link.connection import TransportError
from link.protocol import MONITOR_BUFFER_SIZE, TRACE, Stream

logger = logging.getLogger(__name__)


class LinkMonitor:
    """Background reader that reports end of stream or read failure.

    on_lost is called once, from the monitor thread, with a short reason
    when the stream ends or a read fails. It is never called after
    cancel(); whoever cancels owns the resulting state change.
    """

    def __init__(
        self,
        stream: Stream,
        on_lost: Callable[[str], None],
        name: str = "link-monitor",
    ) -> None:
        self._stream = stream
        self._on_lost = on_lost
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def cancel(self) -> None:
        """Ask the monitor to stop. Observed between reads."""
        self._cancelled.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the monitor thread to exit. Returns True if it did."""
        if self._thread is threading.current_thread() or self._thread.ident is None:
            return not self._thread.is_alive()
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        reason: str | None = None
        try:
            while not self._cancelled.is_set():
                data = self._stream.read(MONITOR_BUFFER_SIZE)
                if data is None:
                    reason = "end of stream"
                    break
                if data:
                    logger.log(TRACE, f"Monitor discarded {len(data)} inbound bytes")
        except TransportError as e:
            reason = str(e)
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"

        if reason is None or self._cancelled.is_set():
            logger.debug("Monitor stopped by cancellation")
            return

        logger.debug(f"Monitor detected link loss: {reason}")
        self._on_lost(reason)
