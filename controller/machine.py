"""Connection lifecycle state machine for remotepad.

All transition logic runs on a single owner thread that drains a queue
of messages. Public methods post a message and return a Future, so
callers never race each other. Blocking transport work (open, write)
runs on a separate I/O executor and the link monitor runs on its own
thread; both report back by posting messages, never by touching state.

Every path out of CONNECTING/CONNECTED releases the transport session
before the new state is published.
"""

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from controller.directory import PeerDirectory
from controller.dispatcher import CommandDispatcher, send_failed_message
from controller.environment import EnvironmentSignals
from controller.session import TransportSession
from link.connection import ACTIVE_STATES, ConnectionState, PeerDescriptor, TransportError
from link.monitor import LinkMonitor
from link.protocol import MONITOR_JOIN_TIMEOUT_S, Direction, Stream, Transport

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


class MachineClosedError(RuntimeError):
    """Raised for intents posted after close()."""

    pass


@dataclass(frozen=True)
class Snapshot:
    """Consistent view of the controller for rendering."""

    state: ConnectionState
    peers: tuple[PeerDescriptor, ...]
    selected: PeerDescriptor | None
    session_open: bool = False


def log_notifier(message: str) -> None:
    """Default notifier: status messages go to the log."""
    logger.info(message)


def _relay(source: Future, target: Future) -> None:
    if source.cancelled():
        target.cancel()
        return
    error = source.exception()
    if error is not None:
        target.set_exception(error)
    else:
        target.set_result(source.result())


class ConnectionStateMachine:
    """Owns the connection state, selected peer and transport session."""

    def __init__(
        self,
        transport: Transport,
        directory: PeerDirectory | None = None,
        environment: EnvironmentSignals | None = None,
        notifier: Notifier = log_notifier,
        monitor_join_timeout_s: float = MONITOR_JOIN_TIMEOUT_S,
    ) -> None:
        self._transport = transport
        self._directory = directory if directory is not None else PeerDirectory()
        self._environment = environment if environment is not None else EnvironmentSignals()
        self._notify = notifier
        self._monitor_join_timeout_s = monitor_join_timeout_s

        # Owner-thread state
        self._state = ConnectionState.DISCONNECTED
        self._selected: PeerDescriptor | None = None
        self._session: TransportSession | None = None
        self._closed = False

        self._snapshot = self._make_snapshot()
        self._changed = threading.Condition()
        self._subscribers: list[Callable[[Snapshot], None]] = []

        self._io = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remotepad-io")
        self._dispatcher = CommandDispatcher(
            self._io,
            notify=self._notify,
            on_failure=lambda session, error: self._post(self._handle_send_failed, session, error),
        )

        self._inbox: queue.Queue = queue.Queue()
        self._post_lock = threading.Lock()
        self._shutdown = False
        self._owner = threading.Thread(target=self._run, name="remotepad-owner", daemon=True)
        self._owner.start()

        # App start runs the same environment check as resume
        self._post(self._handle_resume)

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def state(self) -> ConnectionState:
        return self._snapshot.state

    @property
    def environment(self) -> EnvironmentSignals:
        return self._environment

    def subscribe(self, callback: Callable[[Snapshot], None]) -> Callable[[], None]:
        """Call callback on the owner thread after every change.

        Returns a function that removes the subscription.
        """
        with self._changed:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._changed:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def wait_for(
        self,
        condition: ConnectionState | Callable[[Snapshot], bool],
        timeout: float | None = None,
    ) -> Snapshot:
        """Block until the snapshot matches a state or predicate.

        Raises:
            TimeoutError: If the condition is not met within timeout.
        """
        if isinstance(condition, ConnectionState):
            wanted = condition

            def matches(snap: Snapshot) -> bool:
                return snap.state is wanted

        else:
            matches = condition

        with self._changed:
            if not self._changed.wait_for(lambda: matches(self._snapshot), timeout):
                raise TimeoutError(f"Timed out in state {self._snapshot.state.name}")
            return self._snapshot

    # -------------------------------------------------------------------------
    # Intents
    # -------------------------------------------------------------------------

    def resume(self) -> Future:
        """Re-check adapter and permissions (app start or return to foreground)."""
        return self._post(self._handle_resume)

    def permissions_result(self, all_granted: bool) -> Future:
        return self._post(self._handle_permissions_result, all_granted)

    def request_permissions(self) -> Future:
        return self._post(self._environment.request_permissions)

    def show_peers(self) -> Future:
        return self._post(self._handle_show_peers)

    def select_peer(self, peer: PeerDescriptor) -> Future:
        """Choose the peer to connect to. Resolves to True if accepted."""
        return self._post(self._handle_select_peer, peer)

    def connect(self) -> Future:
        """Start connecting. Resolves once the request has been handled;
        the connect attempt itself finishes in the background."""
        return self._post(self._handle_connect)

    def disconnect(self) -> Future:
        return self._post(self._handle_disconnect)

    def radio_changed(self, enabled: bool) -> Future:
        """Adapter power edge event from the radio collaborator."""
        return self._post(self._handle_radio_changed, enabled)

    def send(self, direction: Direction) -> "Future[bool]":
        """Send a command. Resolves to True once it has been written."""
        result: Future[bool] = Future()

        def on_handled(handled: Future) -> None:
            error = handled.exception()
            if error is not None:
                result.set_exception(error)
                return
            handled.result().add_done_callback(lambda written: _relay(written, result))

        self._post(self._handle_send, direction).add_done_callback(on_handled)
        return result

    def close(self, timeout: float | None = None) -> None:
        """App teardown: release the session and stop all threads."""
        with self._post_lock:
            if self._shutdown:
                return
            self._shutdown = True
            self._inbox.put((self._handle_close, (), Future()))
            self._inbox.put(None)

        if threading.current_thread() is not self._owner:
            self._owner.join(timeout)
        self._io.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "ConnectionStateMachine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Owner thread
    # -------------------------------------------------------------------------

    def _post(self, handler: Callable[..., Any], *args: Any) -> Future:
        future: Future = Future()
        with self._post_lock:
            if self._shutdown:
                future.set_exception(MachineClosedError("Controller is closed"))
                return future
            self._inbox.put((handler, args, future))
        return future

    def _run(self) -> None:
        while True:
            item = self._inbox.get()
            if item is None:
                break
            handler, args, future = item
            if not future.set_running_or_notify_cancel():
                continue
            result = error = None
            try:
                result = handler(*args)
            except Exception as e:
                logger.exception(f"Error in {handler.__name__}")
                error = e
            # Snapshot is current by the time the future resolves
            self._publish()
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)
        logger.debug("Owner thread stopped")

    def _make_snapshot(self) -> Snapshot:
        return Snapshot(
            state=self._state,
            peers=self._directory.peers,
            selected=self._selected,
            session_open=self._session is not None,
        )

    def _publish(self) -> None:
        snapshot = self._make_snapshot()
        with self._changed:
            if snapshot == self._snapshot:
                return
            self._snapshot = snapshot
            self._changed.notify_all()
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber failed")

    def _set_state(self, new_state: ConnectionState) -> None:
        """Single entry point for state changes.

        Leaving the active region always releases the session first.
        """
        if self._closed:
            return
        if new_state not in ACTIVE_STATES and self._session is not None:
            self._teardown()
        if new_state is not self._state:
            logger.info(f"State: {self._state.name} -> {new_state.name}")
        self._state = new_state

    def _teardown(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.release(self._monitor_join_timeout_s)

    def _is_current(self, session: TransportSession) -> bool:
        return session is self._session and not self._closed

    def _refresh_directory(self) -> None:
        try:
            self._directory.refresh()
        except Exception as e:
            logger.warning(f"Peer enumeration failed: {e}")
            self._notify(f"Error loading paired devices: {e}")

    # -------------------------------------------------------------------------
    # Environment transitions
    # -------------------------------------------------------------------------

    def _handle_resume(self) -> None:
        if self._state is ConnectionState.ADAPTER_UNSUPPORTED:
            return

        env = self._environment
        if not env.adapter_present:
            self._set_state(ConnectionState.ADAPTER_UNSUPPORTED)
            return
        if not env.permissions_granted:
            self._set_state(ConnectionState.PERMISSIONS_NEEDED)
            return
        if not env.adapter_enabled:
            self._set_state(ConnectionState.ADAPTER_DISABLED)
            return

        if self._state not in ACTIVE_STATES:
            self._refresh_directory()
            if self._state is not ConnectionState.SELECTING_PEER:
                self._set_state(ConnectionState.DISCONNECTED)

    def _handle_permissions_result(self, all_granted: bool) -> None:
        env = self._environment
        env.permissions_granted = all_granted

        if not all_granted:
            self._notify("Permissions are required to use this app.")
            self._set_state(ConnectionState.PERMISSIONS_NEEDED)
            return

        if not env.adapter_present:
            self._set_state(ConnectionState.ADAPTER_UNSUPPORTED)
        elif env.adapter_enabled:
            self._set_state(ConnectionState.DISCONNECTED)
            self._notify("Permissions granted. Ready to connect.")
            self._refresh_directory()
        else:
            self._set_state(ConnectionState.ADAPTER_DISABLED)
            self._notify("Permissions granted, but the adapter is disabled.")

    def _handle_radio_changed(self, enabled: bool) -> None:
        self._environment.adapter_enabled = enabled

        if not enabled:
            if self._state in (ConnectionState.ADAPTER_UNSUPPORTED, ConnectionState.ADAPTER_DISABLED):
                return
            self._notify("Adapter was turned off.")
            self._set_state(ConnectionState.ADAPTER_DISABLED)
            return

        if self._state is ConnectionState.ADAPTER_DISABLED:
            self._notify("Adapter turned on.")
            self._set_state(ConnectionState.DISCONNECTED)
            self._handle_resume()

    # -------------------------------------------------------------------------
    # Peer selection
    # -------------------------------------------------------------------------

    def _handle_show_peers(self) -> None:
        env = self._environment
        if not env.permissions_granted:
            self._set_state(ConnectionState.PERMISSIONS_NEEDED)
            self._notify("Permissions required to view devices.")
            return
        if not env.adapter_present:
            self._set_state(ConnectionState.ADAPTER_UNSUPPORTED)
            return
        if not env.adapter_enabled:
            self._set_state(ConnectionState.ADAPTER_DISABLED)
            self._notify("Enable the adapter to view devices.")
            return

        self._refresh_directory()
        self._set_state(ConnectionState.SELECTING_PEER)
        if len(self._directory) == 0:
            self._notify("No paired devices found. Pair in system settings.")

    def _handle_select_peer(self, peer: PeerDescriptor) -> bool:
        if self._state is not ConnectionState.SELECTING_PEER:
            logger.debug(f"Ignoring selection of {peer.address} in state {self._state.name}")
            return False
        self._selected = peer
        logger.info(f"Selected {peer.display_name} ({peer.address})")
        self._set_state(ConnectionState.DISCONNECTED)
        return True

    # -------------------------------------------------------------------------
    # Connect / disconnect
    # -------------------------------------------------------------------------

    def _handle_connect(self) -> None:
        if self._state in ACTIVE_STATES:
            logger.debug(f"Ignoring connect request in state {self._state.name}")
            return

        env = self._environment
        if self._selected is None:
            self._notify("Please select a device first")
            if env.permissions_granted and env.adapter_present and env.adapter_enabled:
                self._refresh_directory()
            self._set_state(ConnectionState.SELECTING_PEER)
            return

        if not env.permissions_granted:
            self._set_state(ConnectionState.PERMISSIONS_NEEDED)
            self._notify("Permissions required to connect.")
            env.request_permissions()
            return
        if not env.adapter_present:
            self._set_state(ConnectionState.ADAPTER_UNSUPPORTED)
            self._notify("Adapter not supported on this device.")
            return
        if not env.adapter_enabled:
            self._set_state(ConnectionState.ADAPTER_DISABLED)
            self._notify("Adapter is disabled. Please enable it.")
            return

        peer = self._selected
        self._session = TransportSession(peer=peer)
        self._set_state(ConnectionState.CONNECTING)
        self._notify(f"Connecting to {peer.label}...")
        self._io.submit(self._attempt_connect, self._session)

    def _attempt_connect(self, session: TransportSession) -> None:
        """Runs on the I/O executor."""
        peer = self._directory.find(session.peer.address)
        if peer is None:
            self._post(self._handle_peer_not_found, session)
            return

        try:
            stream = self._transport.open(peer)
        except Exception as e:
            logger.warning(f"Connect to {peer.address} failed: {e}")
            self._post(self._handle_connect_failed, session, e)
            return

        def close_if_rejected(posted: Future) -> None:
            if posted.exception() is not None:
                stream.close()

        self._post(self._handle_connect_opened, session, stream).add_done_callback(close_if_rejected)

    def _handle_peer_not_found(self, session: TransportSession) -> None:
        if not self._is_current(session):
            return
        self._notify("Error: No device selected for connection.")
        self._set_state(ConnectionState.PEER_NOT_FOUND)

    def _handle_connect_failed(self, session: TransportSession, error: Exception) -> None:
        if not self._is_current(session):
            return
        if isinstance(error, TransportError):
            self._notify(f"Connection failed to {session.peer.label}.")
        else:
            self._notify(f"Connection failed: {str(error) or 'Unknown error.'}")
        self._set_state(ConnectionState.DISCONNECTED)

    def _handle_connect_opened(self, session: TransportSession, stream: Stream) -> None:
        if not self._is_current(session):
            logger.debug(f"Discarding late connection to {session.peer.address}")
            stream.close()
            return

        monitor = LinkMonitor(
            stream,
            on_lost=lambda reason: self._post(self._handle_link_lost, session, reason),
            name=f"link-monitor-{session.peer.address}",
        )
        session.attach(stream, monitor)
        monitor.start()
        self._set_state(ConnectionState.CONNECTED)
        self._notify(f"Connected to {session.peer.label}")

    def _handle_link_lost(self, session: TransportSession, reason: str) -> None:
        if not self._is_current(session) or self._state is not ConnectionState.CONNECTED:
            logger.debug(f"Ignoring stale link loss report ({reason})")
            return
        self._notify("Connection lost.")
        self._set_state(ConnectionState.DISCONNECTED)

    def _handle_disconnect(self) -> None:
        if self._state not in ACTIVE_STATES:
            logger.debug(f"Ignoring disconnect in state {self._state.name}")
            return
        self._notify("Disconnecting...")
        self._set_state(ConnectionState.DISCONNECTED)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _handle_send(self, direction: Direction) -> "Future[bool]":
        return self._dispatcher.send(self._state, self._session, direction)

    def _handle_send_failed(self, session: TransportSession, error: Exception) -> None:
        if not self._is_current(session):
            logger.debug(f"Ignoring stale send failure ({error})")
            return
        self._notify(send_failed_message(error))
        self._set_state(ConnectionState.DISCONNECTED)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def _handle_close(self) -> None:
        self._teardown()
        self._closed = True
        logger.info("Controller closed")
