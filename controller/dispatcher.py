"""Command dispatch for remotepad."""

import logging
from collections.abc import Callable
from concurrent.futures import Executor, Future

from controller.session import TransportSession
from link.connection import ConnectionState, TransportError
from link.encoding import encode_command
from link.protocol import Direction

logger = logging.getLogger(__name__)

NOT_CONNECTED_MSG = "Cannot send: Not connected."


class CommandDispatcher:
    """Writes directional commands to the current session's stream.

    Writes run on the given executor so the caller never blocks on I/O.
    A failed write is reported through on_failure with the session it
    happened on; the dispatcher itself never retries or changes state.
    """

    def __init__(
        self,
        executor: Executor,
        notify: Callable[[str], None],
        on_failure: Callable[[TransportSession, Exception], None],
    ) -> None:
        self._executor = executor
        self._notify = notify
        self._on_failure = on_failure

    def send(
        self,
        state: ConnectionState,
        session: TransportSession | None,
        direction: Direction,
    ) -> "Future[bool]":
        """Send one command. Resolves to True once written and flushed."""
        if state is not ConnectionState.CONNECTED or session is None:
            self._notify(NOT_CONNECTED_MSG)
            future: Future[bool] = Future()
            future.set_result(False)
            return future

        return self._executor.submit(self._write, session, direction)

    def _write(self, session: TransportSession, direction: Direction) -> bool:
        stream = session.stream
        if stream is None or session.released:
            logger.debug(f"Dropping {direction.value}: session already released")
            return False

        try:
            stream.write(encode_command(direction))
            stream.flush()
        except Exception as e:
            logger.warning(f"Send {direction.value} failed: {e}")
            self._on_failure(session, e)
            return False

        logger.debug(f"Sent {direction.value}")
        return True


def send_failed_message(error: Exception) -> str:
    """Status text for a failed write."""
    if isinstance(error, TransportError):
        return "Send failed: Connection lost."
    return f"Send failed: {error}"
