"""
Listening server for the SayType bridge.

Binds the API to a port on all interfaces and serves it with uvicorn.
The server moves through:

    STOPPED -> BINDING -> LISTENING   (bind succeeded)
    STOPPED -> BINDING -> FAILED      (bind failed, terminal)

A bind failure is logged and recorded on the instance; it never raises
into the hosting process.
"""

import socket
import sys
import threading
from enum import Enum
from typing import Optional

import uvicorn

from saytype_bridge.api.main import create_app
from saytype_bridge.api.state import ServerState
from saytype_bridge.config import DEFAULT_PORT
from saytype_bridge.logging import get_logger

logger = get_logger("server")

DEFAULT_HOST = "0.0.0.0"


class ServerStatus(str, Enum):
    STOPPED = "stopped"
    BINDING = "binding"
    LISTENING = "listening"
    FAILED = "failed"


class BridgeServer:
    """
    Owns the listening socket and the uvicorn server for one ServerState.
    """

    def __init__(
        self,
        state: ServerState,
        port: int = DEFAULT_PORT,
        host: str = DEFAULT_HOST,
        log_level: str = "info",
    ):
        self.state = state
        self.port = port
        self.host = host
        self.log_level = log_level
        self.app = create_app(state)

        self.error: Optional[OSError] = None
        self._status = ServerStatus.STOPPED
        self._socket: Optional[socket.socket] = None
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_requested = threading.Event()
        self._lock = threading.Lock()

    @property
    def status(self) -> ServerStatus:
        return self._status

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, useful when constructed with port 0."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    def bind(self) -> bool:
        """
        Bind and listen on the configured address.

        Returns:
            True when the server is LISTENING, False when it FAILED

        Raises:
            RuntimeError: If called on a server that is not STOPPED
        """
        with self._lock:
            if self._status is not ServerStatus.STOPPED:
                raise RuntimeError(f"Cannot bind a server that is {self._status.value}")
            self._status = ServerStatus.BINDING

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if sys.platform != "win32":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen()
        except OSError as e:
            sock.close()
            self.error = e
            self._status = ServerStatus.FAILED
            logger.error(
                f"Failed to bind SayType API server on {self.host}:{self.port}: {e}",
                extra={"host": self.host, "port": self.port},
            )
            return False

        self._socket = sock
        self._status = ServerStatus.LISTENING
        logger.info(
            f"SayType API listening on http://{self.host}:{self.bound_port}",
            extra={"host": self.host, "port": self.bound_port},
        )
        return True

    def serve(self) -> None:
        """
        Serve requests until uvicorn exits. Binds first if needed.

        Blocks the calling thread.
        """
        if self._status is ServerStatus.STOPPED and not self.bind():
            return
        if self._status is not ServerStatus.LISTENING or self._socket is None:
            return

        config = uvicorn.Config(
            self.app,
            log_level=self.log_level,
            log_config=None,
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        if self._stop_requested.is_set():
            self._server.should_exit = True

        try:
            self._server.run(sockets=[self._socket])
        except Exception as e:
            logger.error(f"SayType API server error: {e}", exc_info=True)
        finally:
            self._close_socket()

    def start(self) -> bool:
        """
        Bind synchronously, then serve on a daemon thread.

        Returns:
            True if the server is listening
        """
        if not self.bind():
            return False

        self._thread = threading.Thread(
            target=self.serve, name="saytype-bridge-server", daemon=True
        )
        self._thread.start()
        return True

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Ask uvicorn to exit and wait for the serving thread."""
        self._stop_requested.set()
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._close_socket()
        with self._lock:
            if self._status is ServerStatus.LISTENING:
                self._status = ServerStatus.STOPPED

    def _close_socket(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
