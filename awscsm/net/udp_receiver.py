"""Threaded UDP receiver service for AWS CSM datagrams."""
from __future__ import annotations

import enum
import logging
import socket
import threading
from typing import Callable, Optional, Tuple, Union

from ..errors import BindError, DecodeError, ShutdownError
from ..telemetry.message import CsmEvent, decode

logger = logging.getLogger(__name__)

# Comfortably above the largest SDK message. Longer datagrams are truncated by
# the kernel, then fail to decode and are dropped like any malformed payload.
MAX_DATAGRAM_SIZE = 8192
DEFAULT_POLL_INTERVAL = 0.5

Address = Union[str, Tuple[str, int]]
Handler = Callable[[CsmEvent], None]


class ListenerState(str, enum.Enum):
    CREATED = "created"
    BOUND = "bound"
    SERVING = "serving"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


def parse_address(address: Address) -> Tuple[str, int]:
    """Split ``host:port`` (``[host]:port`` for IPv6) into a host/port pair.

    An empty host means all interfaces.
    """

    if isinstance(address, tuple):
        host, port = address
    else:
        host, sep, port = str(address).rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address {address!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
    try:
        port_num = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"invalid port in address {address!r}") from None
    if not 0 <= port_num <= 65535:
        raise ValueError(f"port out of range in address {address!r}")
    return str(host), port_num


class CsmReceiverService:
    """Listens for CSM datagrams and hands each decoded event to ``handler``.

    The handler runs synchronously on the receive loop, so events are
    delivered one at a time in arrival order. Receive errors and payloads
    that fail to decode are dropped without interrupting the loop. Reads are
    bounded by ``poll_interval`` so a stop request is observed even when no
    traffic arrives.
    """

    def __init__(
        self,
        address: Address,
        handler: Handler,
        *,
        buffer_size: int = MAX_DATAGRAM_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.address = address
        self.handler = handler
        self.buffer_size = int(buffer_size)
        self.poll_interval = float(poll_interval)
        self._state = ListenerState.CREATED
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[Exception] = None

    @property
    def state(self) -> ListenerState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ListenerState) -> None:
        with self._state_lock:
            previous, self._state = self._state, state
        logger.debug("CsmReceiverService %s -> %s", previous.value, state.value)

    @property
    def server_address(self) -> Optional[Tuple]:
        """The bound socket address, or ``None`` when no socket is held."""

        sock = self._sock
        if sock is None:
            return None
        return sock.getsockname()

    def bind(self) -> Tuple:
        """Resolve the address and bind the UDP socket.

        Raises :class:`BindError` on any resolution or bind failure; the
        service is then ``FAILED`` and cannot be reused.
        """

        if self.state is not ListenerState.CREATED:
            raise RuntimeError(f"cannot bind a listener in state {self.state.value}")

        try:
            host, port = parse_address(self.address)
            family, socktype, proto, _, sockaddr = socket.getaddrinfo(
                host or None, port, type=socket.SOCK_DGRAM, flags=socket.AI_PASSIVE
            )[0]
            sock = socket.socket(family, socktype, proto)
        except (OSError, ValueError) as exc:
            self._set_state(ListenerState.FAILED)
            raise BindError(str(self.address), exc) from exc

        try:
            sock.bind(sockaddr)
        except OSError as exc:
            sock.close()
            self._set_state(ListenerState.FAILED)
            raise BindError(str(self.address), exc) from exc

        sock.settimeout(self.poll_interval)
        self._sock = sock
        self._set_state(ListenerState.BOUND)
        bound = sock.getsockname()
        logger.info("Listening for CSM datagrams on udp://%s:%s", bound[0], bound[1])
        return bound

    def serve(self, stop_event: Optional[threading.Event] = None) -> None:
        """Run the receive loop in the calling thread.

        Returns once ``stop_event`` (or :meth:`stop`) is set and the socket
        has been released. Without a stop event the loop runs for the life of
        the process. Binds first when :meth:`bind` has not been called.
        """

        if self.state is ListenerState.CREATED:
            self.bind()
        if self.state is not ListenerState.BOUND:
            raise RuntimeError(f"cannot serve a listener in state {self.state.value}")

        stop = stop_event if stop_event is not None else self._stop
        sock = self._sock
        if sock is None:
            raise RuntimeError("cannot serve a listener without a bound socket")
        self._set_state(ListenerState.SERVING)

        try:
            while not (stop.is_set() or self._stop.is_set()):
                try:
                    data, addr = sock.recvfrom(self.buffer_size)
                except socket.timeout:
                    continue
                except OSError as exc:
                    logger.debug("Dropped datagram after receive error: %s", exc)
                    continue

                try:
                    event = decode(data)
                except DecodeError as exc:
                    logger.debug(
                        "Dropped %s byte datagram from %s: %s", len(data), addr, exc
                    )
                    continue

                self.handler(event)
        except BaseException:
            self._set_state(ListenerState.FAILED)
            self._close_after_failure()
            raise

        self._set_state(ListenerState.STOPPING)
        try:
            self._release()
        except ShutdownError:
            self._set_state(ListenerState.FAILED)
            raise
        self._set_state(ListenerState.STOPPED)
        logger.info("CsmReceiverService stopped")

    def start(self) -> None:
        """Bind in the calling thread and serve on a background thread.

        A :class:`BindError` is raised here rather than inside the thread.
        """

        if self._thread and self._thread.is_alive():
            return
        if self.state is ListenerState.CREATED:
            self.bind()
        if self.state is not ListenerState.BOUND:
            raise RuntimeError(f"cannot start a listener in state {self.state.value}")
        self._stop.clear()
        self._error = None
        self._thread = threading.Thread(
            target=self._run,
            name="CsmReceiverService",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the receive loop and release the socket.

        Re-raises the error that ended the background loop, if any, such as
        a :class:`ShutdownError` from closing the socket.
        """

        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=self.poll_interval + 1.0 if timeout is None else timeout)
            if thread.is_alive():
                # The loop still owns the socket; a later stop() joins again.
                logger.warning("CsmReceiverService did not stop within the timeout")
                return
            self._thread = None
        elif self.state is ListenerState.BOUND:
            self._set_state(ListenerState.STOPPING)
            try:
                self._release()
            except ShutdownError:
                self._set_state(ListenerState.FAILED)
                raise
            self._set_state(ListenerState.STOPPED)

        error, self._error = self._error, None
        if error is not None:
            raise error

    def _run(self) -> None:
        try:
            self.serve()
        except Exception as exc:
            logger.error("CsmReceiverService terminated: %s", exc, exc_info=True)
            self._error = exc

    def _release(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            raise ShutdownError(f"failed to release udp socket: {exc}") from exc

    def _close_after_failure(self) -> None:
        try:
            self._release()
        except ShutdownError as exc:
            logger.warning("%s", exc)


def listen_and_serve(
    address: Address,
    handler: Handler,
    stop_event: Optional[threading.Event] = None,
    *,
    buffer_size: int = MAX_DATAGRAM_SIZE,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Bind ``address`` and dispatch every decoded CSM datagram to ``handler``.

    Raises :class:`BindError` immediately when the socket cannot be bound.
    Returns ``None`` after ``stop_event`` is set; without one it only returns
    by raising.
    """

    service = CsmReceiverService(
        address, handler, buffer_size=buffer_size, poll_interval=poll_interval
    )
    service.bind()
    service.serve(stop_event)
