# File: auth_service/server.py
"""Lifecycle manager for the HTTP listener.

Owns the whole process lifetime of the server::

    IDLE -> STARTING -> SERVING -> DRAINING -> STOPPED
               |                      |
               v                      v
         FAILED_START            FORCED_STOP

The accept loop runs on a background thread while the main thread blocks on a
``ShutdownSignal``. Once it fires, idle keep-alive connections are closed, the
listener stops accepting, and in-flight requests get until the shutdown
deadline to finish.
"""

import contextlib
import logging
import select
import socket
import threading
import time
from enum import Enum

from flask import Flask
from werkzeug.serving import ThreadedWSGIServer, WSGIRequestHandler, get_sockaddr, select_address_family

from .config import ServerConfig
from .constants import EXIT_FAILURE, EXIT_OK
from .errors import BindError, ShutdownTimeoutError
from .signals import ShutdownSignal

logger = logging.getLogger(__name__)

LISTEN_BACKLOG = 128


class ServerState(Enum):
    """Lifecycle states of the HTTP listener."""

    IDLE = "idle"
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"
    FAILED_START = "failed_start"
    FORCED_STOP = "forced_stop"


class InFlightTracker:
    """Counts requests being processed and lets a waiter block until none are left."""

    def __init__(self) -> None:
        """Initialize the tracker with no active requests."""
        self._cond = threading.Condition()
        self._active = 0

    @property
    def active(self) -> int:
        """Number of requests currently in flight."""
        with self._cond:
            return self._active

    def acquire(self) -> None:
        """Record a request entering the server."""
        with self._cond:
            self._active += 1

    def release(self) -> None:
        """Record a request leaving the server, waking waiters when none remain."""
        with self._cond:
            self._active -= 1
            if self._active == 0:
                self._cond.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        """Block until no request is in flight or the timeout elapses.

        Args:
            timeout: Seconds to wait. Negative values are treated as zero.

        Returns:
            bool: True if the server drained, False if the timeout won the race.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._active == 0, timeout=max(timeout, 0.0))


def _wait_readable(conn: socket.socket, timeout: float) -> bool:
    ready, _, _ = select.select([conn], [], [], max(timeout, 0.0))
    return bool(ready)


class LifecycleRequestHandler(WSGIRequestHandler):
    """Request handler applying the connection timeouts and in-flight accounting.

    * read timeout: waiting for, and reading, the request head of a new connection
    * write timeout: an absolute deadline on running the application and writing the response
    * idle timeout: waiting for the next request on a keep-alive connection
    """

    server: "LifecycleWSGIServer"
    protocol_version = "HTTP/1.1"

    def setup(self) -> None:
        """Apply the read timeout before the socket file objects are created."""
        self.timeout = self.server.config.read_timeout
        self.requests_served = 0
        super().setup()

    def handle_one_request(self) -> None:
        """Serve one request, counting it as in flight while it runs."""
        config = self.server.config
        wait = config.read_timeout if self.requests_served == 0 else config.idle_timeout
        if not self._await_request(wait):
            self.close_connection = True
            return

        try:
            self.connection.settimeout(config.read_timeout)
            super().handle_one_request()
        finally:
            self.requests_served += 1
            self.server.tracker.release()

        # No keep-alive once draining has started.
        if self.server.draining:
            self.close_connection = True

    def _await_request(self, timeout: float) -> bool:
        conn = self.connection
        if self.server.park(conn):
            readable = _wait_readable(conn, timeout)
        else:
            # Draining: only bytes that already arrived are served.
            readable = _wait_readable(conn, 0)
        return self.server.admit(conn, readable)

    def run_wsgi(self) -> None:
        """Run the application and write the response within the write timeout.

        The socket timeout bounds each send. A timer bounds the whole response:
        when it fires the connection is shut down, so a slow reader cannot
        stretch a response past the deadline.
        """
        timeout = self.server.config.write_timeout
        self.connection.settimeout(timeout)
        timer = threading.Timer(timeout, self._expire_response)
        timer.daemon = True
        timer.start()
        try:
            super().run_wsgi()
        finally:
            timer.cancel()

    def _expire_response(self) -> None:
        logger.warning(
            f"Write timeout after {self.server.config.write_timeout:g}s, "
            f"closing connection from {self.client_address[0]}"
        )
        self.close_connection = True
        with contextlib.suppress(OSError):
            self.connection.shutdown(socket.SHUT_RDWR)

    def log_request(self, code: int | str = "-", size: int | str = "-") -> None:
        """Skip werkzeug's request line; the application's access log writes one."""


class LifecycleWSGIServer(ThreadedWSGIServer):
    """Threaded WSGI server on a pre-bound socket that knows how to drain."""

    def __init__(self, host: str, port: int, app: Flask, config: ServerConfig, fd: int) -> None:
        """Initialize the server.

        Args:
            host: The bound address.
            port: The bound port.
            app: The WSGI application.
            config: Timeouts for the request handler.
            fd: File descriptor of the listening socket. The server keeps its own duplicate.
        """
        self.config = config
        self.tracker = InFlightTracker()
        self.draining = False
        self._idle_connections: set[socket.socket] = set()
        self._connections_lock = threading.Lock()
        super().__init__(host, port, app, handler=LifecycleRequestHandler, fd=fd)

    def park(self, conn: socket.socket) -> bool:
        """Mark a connection as waiting for its next request.

        Returns:
            bool: False if draining has already started.
        """
        with self._connections_lock:
            if self.draining:
                return False
            self._idle_connections.add(conn)
            return True

    def admit(self, conn: socket.socket, readable: bool) -> bool:
        """Take a connection out of the idle set and count its request if data arrived.

        Returns:
            bool: True if a request is now in flight on the connection.
        """
        with self._connections_lock:
            self._idle_connections.discard(conn)
            if not readable:
                return False
            self.tracker.acquire()
            return True

    def begin_drain(self) -> int:
        """Refuse further keep-alive requests and close idle connections.

        Returns:
            int: Number of idle connections closed.
        """
        with self._connections_lock:
            self.draining = True
            idle = list(self._idle_connections)
            self._idle_connections.clear()

        for conn in idle:
            # The peer may have closed it already.
            with contextlib.suppress(OSError):
                conn.shutdown(socket.SHUT_RDWR)
        return len(idle)


def bind_listener(host: str, port: str) -> socket.socket:
    """Bind and listen on ``host:port``.

    Raises:
        ValueError: If the port is not an integer in 0-65535.
        OSError: If the address cannot be bound (in use, no permission, ...).
    """
    port_number = int(port)
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port must be 0-65535, got {port_number}")
    family = select_address_family(host, port_number)
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(get_sockaddr(host, port_number, family))
        sock.listen(LISTEN_BACKLOG)
    except BaseException:
        sock.close()
        raise
    return sock


class ServerHandle:
    """A bound, running server and the thread running its accept loop."""

    def __init__(self, server: LifecycleWSGIServer, thread: threading.Thread) -> None:
        """Initialize the handle.

        Args:
            server: The bound WSGI server.
            thread: The thread running ``serve_forever``.
        """
        self.server = server
        self.thread = thread

    @property
    def host(self) -> str:
        """The bound address."""
        return self.server.host

    @property
    def port(self) -> int:
        """The bound port (the real one when the config asked for port 0)."""
        return self.server.port

    @property
    def in_flight(self) -> int:
        """Requests currently being processed."""
        return self.server.tracker.active


class LifecycleManager:
    """Start, serve and gracefully stop the HTTP listener.

    Example:
        manager = LifecycleManager(create_app(config), config)
        sys.exit(manager.run())
    """

    def __init__(self, app: Flask, config: ServerConfig, shutdown_signal: ShutdownSignal | None = None) -> None:
        """Initialize the manager.

        Args:
            app: The WSGI application to serve.
            config: Resolved server configuration.
            shutdown_signal: Cancellation token shared with the caller. A fresh one is created if omitted.
        """
        self.app = app
        self.config = config
        self.shutdown_signal = shutdown_signal or ShutdownSignal()
        self.state = ServerState.IDLE
        self.serve_error: Exception | None = None
        self.handle: ServerHandle | None = None

    def _transition(self, state: ServerState) -> None:
        logger.debug(f"Lifecycle: {self.state.value} -> {state.value}")
        self.state = state

    def is_serving(self) -> bool:
        """Return True while new connections are being accepted."""
        return self.state is ServerState.SERVING

    def start(self) -> ServerHandle:
        """Bind the listener and start the accept loop on a background thread.

        Returns:
            ServerHandle: The running server.

        Raises:
            BindError: If the listener cannot be bound. The state becomes FAILED_START.
            RuntimeError: If the manager was already started.
        """
        if self.state is not ServerState.IDLE:
            raise RuntimeError(f"Cannot start server in state '{self.state.value}'")
        self._transition(ServerState.STARTING)

        config = self.config
        try:
            sock = bind_listener(config.host, config.port)
        except (OSError, OverflowError, ValueError) as e:
            self._transition(ServerState.FAILED_START)
            logger.critical(f"Server failed to start: cannot listen on {config.host}:{config.port}: {e}")
            raise BindError(config.host, config.port, e) from e

        try:
            server = LifecycleWSGIServer(config.host, sock.getsockname()[1], self.app, config, fd=sock.fileno())
        finally:
            sock.close()

        thread = threading.Thread(target=self._serve, args=(server,), name="auth-service-http", daemon=True)
        handle = ServerHandle(server, thread)
        self.handle = handle
        self._transition(ServerState.SERVING)
        thread.start()
        logger.info(f"Auth Service starting on {handle.host}:{handle.port} (mode={config.mode})")
        return handle

    def _serve(self, server: LifecycleWSGIServer) -> None:
        try:
            server.serve_forever()
        except Exception as e:
            self.serve_error = e
            logger.critical(f"HTTP server loop crashed: {e}", exc_info=True)
            self.shutdown_signal.trigger("serve-error")

    def shutdown(self, handle: ServerHandle, timeout: float | None = None) -> None:
        """Stop accepting connections and drain in-flight requests.

        The deadline is a hard bound: it is neither extended nor retried, and
        requests still running when it elapses are abandoned.

        Args:
            handle: The running server.
            timeout: Drain deadline in seconds. Defaults to ``config.shutdown_timeout``.

        Raises:
            ShutdownTimeoutError: If requests are still in flight at the deadline.
                The state becomes FORCED_STOP.
        """
        if timeout is None:
            timeout = self.config.shutdown_timeout
        deadline = time.monotonic() + timeout

        self._transition(ServerState.DRAINING)
        server = handle.server
        logger.info(f"Shutting down server (in flight: {server.tracker.active})...")

        closed = server.begin_drain()
        if closed:
            logger.debug(f"Closed {closed} idle connection(s)")

        # Stop the accept loop, then close the listener so new connections are refused.
        server.shutdown()
        server.server_close()
        handle.thread.join(max(deadline - time.monotonic(), 0.0))

        if not server.tracker.wait_idle(deadline - time.monotonic()):
            outstanding = server.tracker.active
            self._transition(ServerState.FORCED_STOP)
            error = ShutdownTimeoutError(timeout, outstanding)
            logger.critical(f"Server forced to shutdown: {error}")
            raise error

        self._transition(ServerState.STOPPED)
        logger.info("Server exited gracefully")

    def run(self, install_signal_handlers: bool = True) -> int:
        """Run the full lifetime: start, wait for the shutdown signal, drain.

        Args:
            install_signal_handlers: Hook SIGINT/SIGTERM into the shutdown signal.
                Only possible from the main thread.

        Returns:
            int: Process exit code. 0 after a graceful shutdown, 1 on bind failure,
            forced shutdown or a crashed accept loop.
        """
        shutdown_signal = self.shutdown_signal
        if install_signal_handlers:
            shutdown_signal.install()
        try:
            try:
                handle = self.start()
            except BindError:
                return EXIT_FAILURE

            shutdown_signal.wait()
            logger.debug(f"Shutdown requested: {shutdown_signal.reason}")

            try:
                self.shutdown(handle)
            except ShutdownTimeoutError:
                return EXIT_FAILURE
            return EXIT_FAILURE if self.serve_error is not None else EXIT_OK
        finally:
            if install_signal_handlers:
                shutdown_signal.restore()
