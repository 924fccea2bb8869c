"""
Execution server

Answers page requests that arrive as JSON service requests on a
Unix-domain socket, one request per connection, each connection handled
on its own thread. The server exits when a request asks it to (after every
in-flight request has been answered) or, if an idle limit is set, when no
connection has arrived for that long.

Single-shot modes answer one request read from a file, or run the page
once with no request at all.
"""

import contextlib
import os
import selectors
import socket
import threading
import time
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

from ..models.request import ServiceRequest, serviceRequest_decode
from .dispatch import Dispatcher
from .errors import DecodeError, IncompleteRequest
from .log import LOG

# Seconds a client has to send its service request
REQUEST_TIMEOUT = 10.0

RECV_SIZE = 4096


def pid_write(out: BinaryIO) -> None:
    """Answer a control request with our process ID"""
    out.write(f"gosp-pid {os.getpid()}\n".encode("utf-8"))
    out.flush()


def stdio_close() -> None:
    """Point standard input and output at /dev/null; the server never uses them"""
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1):
            os.dup2(devnull, fd)
    finally:
        os.close(devnull)


def _process_exit() -> None:
    os._exit(0)


class ExecutionServer:
    """
    Serves one page generator on a Unix-domain socket

    Attributes:
        dispatcher: Runs the page for each ordinary request
        socket_name: Absolute path of the listening socket
        max_idle: Seconds without a connection before exiting (0 = never)
        request_timeout: Seconds a client has to send its request
        done: Set once a terminate request has been received
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        socket_name: str,
        max_idle: float = 0.0,
        request_timeout: float = REQUEST_TIMEOUT,
        close_stdio: bool = True,
        on_idle: Optional[Callable[[], None]] = None,
        poll_interval: float = 0.5,
    ) -> None:
        """
        Initialize the server (nothing is bound until serve() runs)

        Args:
            on_idle: Called after the idle limit expires and the socket file
                     has been removed; by default exits the process at once
            close_stdio: Detach standard input and output on startup
            poll_interval: Seconds between checks of the done flag while
                           waiting for connections
        """
        self.dispatcher = dispatcher
        self.socket_name = os.path.abspath(socket_name)
        self.max_idle = max_idle
        self.request_timeout = request_timeout
        self.close_stdio = close_stdio
        self.on_idle = on_idle or _process_exit
        self.poll_interval = poll_interval

        self.done = threading.Event()
        self.ready = threading.Event()
        self.workers: List[threading.Thread] = []
        self.listener: Optional[socket.socket] = None
        self._clock: Optional[threading.Timer] = None
        self._clock_lock = threading.Lock()

    def serve(self) -> None:
        """
        Listen for and answer requests until told to exit

        Raises:
            OSError: if the socket cannot be created
        """
        if self.close_stdio:
            stdio_close()
        self.socket_bind()
        self.killClock_reset()
        try:
            self.connections_accept()
        finally:
            self.killClock_stop()
            # Let every in-flight request finish before we return.
            for worker in list(self.workers):
                worker.join()
            if self.listener is not None:
                self.listener.close()
            with contextlib.suppress(FileNotFoundError):
                os.remove(self.socket_name)
            LOG("Server stopped", level=2)

    def socket_bind(self) -> None:
        """Replace any stale socket file with a fresh listening socket"""
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.socket_name)
        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            listener.bind(self.socket_name)
            listener.listen()
        except OSError:
            listener.close()
            raise
        self.listener = listener
        self.ready.set()
        LOG(f"Listening on {self.socket_name}", level=2)

    def connections_accept(self) -> None:
        """Hand each incoming connection to a new worker thread"""
        assert self.listener is not None
        with selectors.DefaultSelector() as selector:
            selector.register(self.listener, selectors.EVENT_READ)
            while not self.done.is_set():
                if not selector.select(self.poll_interval):
                    continue
                conn, _ = self.listener.accept()
                self.killClock_reset()
                if self.done.is_set():
                    conn.close()
                    break
                worker = threading.Thread(
                    target=self.connection_handle,
                    args=(conn,),
                    name="gosp-connection",
                    daemon=True,
                )
                self.workers = [w for w in self.workers if w.is_alive()]
                self.workers.append(worker)
                worker.start()

    def connection_handle(self, conn: socket.socket) -> None:
        """Read one service request from conn and answer it"""
        with conn:
            try:
                request = self.serviceRequest_receive(conn)
            except DecodeError as e:
                LOG(f"Dropping connection: {e}", level=2)
                return

            out = conn.makefile("wb")
            try:
                if request.exit_now:
                    LOG("Received a request to exit", level=2)
                    pid_write(out)
                    self.shutdown_begin()
                elif request.get_pid:
                    pid_write(out)
                else:
                    self.dispatcher.dispatch(out, request.user_data)
            except OSError as e:
                LOG(f"Abandoning response: {e}", level=1)
            finally:
                with contextlib.suppress(OSError):
                    out.close()

    def serviceRequest_receive(self, conn: socket.socket) -> ServiceRequest:
        """
        Read until one complete JSON service request has arrived

        Only input that may still become a JSON value keeps the read going;
        anything else is refused at once.

        Raises:
            DecodeError: on malformed input, end of input, a socket error or
                         when request_timeout elapses
        """
        deadline = time.monotonic() + self.request_timeout
        data = b""
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise DecodeError("Timed out waiting for a service request")
                conn.settimeout(remaining)
                chunk = conn.recv(RECV_SIZE)
                data += chunk
                try:
                    return serviceRequest_decode(data)
                except IncompleteRequest:
                    if not chunk:
                        raise
        except OSError as e:
            raise DecodeError(f"Failed to receive a service request: {e}") from e
        finally:
            with contextlib.suppress(OSError):
                conn.settimeout(None)

    def shutdown_begin(self) -> None:
        """Stop accepting connections and wake the accept loop"""
        self.done.set()
        with contextlib.suppress(OSError):
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as dummy:
                dummy.connect(self.socket_name)

    def stop(self) -> None:
        """Ask a running server to exit once in-flight requests complete"""
        self.shutdown_begin()

    def killClock_reset(self) -> None:
        """Restart the idle countdown"""
        if self.max_idle <= 0:
            return
        with self._clock_lock:
            if self._clock is not None:
                self._clock.cancel()
            self._clock = threading.Timer(self.max_idle, self.idle_expire)
            self._clock.daemon = True
            self._clock.start()

    def killClock_stop(self) -> None:
        with self._clock_lock:
            if self._clock is not None:
                self._clock.cancel()
                self._clock = None

    def idle_expire(self) -> None:
        """Remove the socket file and exit after max_idle seconds without a connection"""
        LOG(f"No connections for {self.max_idle} seconds; exiting", level=2)
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.socket_name)
        self.on_idle()


def serve_file(dispatcher: Dispatcher, filename: str, out: BinaryIO) -> None:
    """
    Answer the single service request stored in a JSON file

    Raises:
        OSError: if the file cannot be read
        DecodeError: if it does not hold a service request
    """
    request = serviceRequest_decode(Path(filename).read_bytes())
    if request.exit_now or request.get_pid:
        pid_write(out)
        return
    dispatcher.dispatch(out, request.user_data)


def serve_once(dispatcher: Dispatcher, out: BinaryIO) -> None:
    """Run the page once with no request data"""
    dispatcher.dispatch(out, None)
