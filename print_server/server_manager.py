"""
Server Lifecycle Manager
Starts and stops the HTTP listener at runtime and force-closes open connections on stop
"""

import asyncio
import logging
import os
import socket
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import uvicorn
from uvicorn.protocols.http.h11_impl import H11Protocol

from .errors import ServerAlreadyRunningError, ServerStartError
from .models import HttpsSettings
from .temp_artifacts import TempArtifactManager

STOPPED = "stopped"
RUNNING = "running"

StateListener = Callable[[str], None]


class ServerState:
    """Listener status, handle and the set of open connections"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.status = STOPPED
        self.listener: Optional[uvicorn.Server] = None
        self.address: Optional[Tuple[Any, ...]] = None
        self.open_connections: Set[asyncio.BaseTransport] = set()

    @property
    def is_running(self) -> bool:
        return self.status == RUNNING

    def track(self, transport: asyncio.BaseTransport):
        self.open_connections.add(transport)
        self.logger.debug(f"New connection; total = {len(self.open_connections)}")

    def untrack(self, transport: Optional[asyncio.BaseTransport]):
        self.open_connections.discard(transport)
        self.logger.debug(f"Connection closed; total = {len(self.open_connections)}")

    def reset(self):
        self.status = STOPPED
        self.listener = None
        self.address = None
        self.open_connections.clear()


def connection_tracking_protocol(state: ServerState, base: type = H11Protocol) -> type:
    """HTTP protocol class that reports connection open/close to ``state``"""

    class ConnectionTrackingProtocol(base):
        def connection_made(self, transport):
            super().connection_made(transport)
            state.track(transport)

        def connection_lost(self, exc):
            state.untrack(self.transport)
            super().connection_lost(exc)

    return ConnectionTrackingProtocol


def is_pem_text(value: str) -> bool:
    return "-----BEGIN" in value


class ServerLifecycleManager:
    """Owns the listener: stopped --start--> running --stop--> stopped"""

    def __init__(self, app):
        self.app = app
        self.state = ServerState()
        self.logger = logging.getLogger(__name__)
        self._listeners: List[StateListener] = []
        self._serve_task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def status(self) -> str:
        return self.state.status

    def add_state_listener(self, listener: StateListener):
        self._listeners.append(listener)

    def _notify(self, status: str):
        for listener in self._listeners:
            try:
                listener(status)
            except Exception as e:
                self.logger.error(f"Server state listener failed: {e}")

    async def start(self, hostname: str, port: int, https: Optional[HttpsSettings] = None) -> str:
        """Bind the listener and serve the app; raises ServerStartError if it cannot listen"""
        if self.state.is_running:
            raise ServerAlreadyRunningError(
                f"Server is already running on {self._format_address(self.state.address)}"
            )

        https = https or HttpsSettings()
        self.logger.info(f"Starting server... (use HTTPS: {https.use_https})")

        sock = self._bind_socket(hostname, int(port))
        try:
            config = self._build_config(https)
        except Exception:
            sock.close()
            raise

        server = uvicorn.Server(config)
        task = asyncio.create_task(server.serve(sockets=[sock]), name="print_server_listener")

        try:
            await self._wait_started(server, task)
        except ServerStartError:
            sock.close()
            raise

        self._serve_task = task
        task.add_done_callback(self._on_serve_done)

        self.state.status = RUNNING
        self.state.listener = server
        self.state.address = sock.getsockname()
        self.logger.info(f"Server started on {self._format_address(self.state.address)}")

        self._notify(RUNNING)
        return RUNNING

    async def stop(self) -> str:
        """Abort open connections, close the listener; a no-op when already stopped"""
        self.logger.info("Stopping server...")
        if not self.state.is_running or self.state.listener is None:
            self.logger.info("Server is not started")
            self._notify(STOPPED)
            return STOPPED

        self._stopping = True
        try:
            self._abort_connections()
            await self._close_listener()
        finally:
            self.state.reset()
            self._serve_task = None
            self._stopping = False

        self.logger.info("Server stopped")
        self._notify(STOPPED)
        return STOPPED

    def _abort_connections(self):
        transports = list(self.state.open_connections)
        for transport in transports:
            transport.abort()
        self.logger.debug(f"Aborted {len(transports)} open connections")

    async def _close_listener(self):
        server = self.state.listener
        server.should_exit = True
        server.force_exit = True

        if self._serve_task is not None and not self._serve_task.done():
            try:
                await self._serve_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                self.logger.error(f"Listener exited with error: {e}")

    def _on_serve_done(self, task: asyncio.Task):
        # Listener ended without stop(), e.g. uvicorn handled a signal itself
        if self._stopping or task is not self._serve_task:
            return
        self.logger.warning("Listener exited unexpectedly")
        self.state.reset()
        self._serve_task = None
        self._notify(STOPPED)

    def _bind_socket(self, hostname: str, port: int) -> socket.socket:
        sock = None
        try:
            family, socktype, proto, _, sockaddr = socket.getaddrinfo(
                hostname, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
            )[0]
            sock = socket.socket(family, socktype, proto)
            if os.name != 'nt':
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
            sock.set_inheritable(True)
            return sock
        except OSError as e:
            if sock is not None:
                sock.close()
            self.logger.error(f"Cannot listen on {hostname}:{port}: {e}")
            raise ServerStartError(f"Cannot listen on {hostname}:{port}: {e}") from e

    def _build_config(self, https: HttpsSettings) -> uvicorn.Config:
        options: Dict[str, Any] = {}
        pem_files = TempArtifactManager(prefix="tls_", suffix=".pem")
        written: List[str] = []

        if https.use_https:
            if not https.cert or not https.key:
                raise ServerStartError("HTTPS is enabled but certificate or key is missing")
            options["ssl_certfile"] = self._pem_path(https.cert, pem_files, written)
            options["ssl_keyfile"] = self._pem_path(https.key, pem_files, written)

        config = uvicorn.Config(
            self.app,
            http=connection_tracking_protocol(self.state),
            lifespan="off",
            log_level="error",
            access_log=False,
            loop="asyncio",
            **options
        )
        try:
            config.load()
        except Exception as e:
            raise ServerStartError(f"Invalid server configuration: {e}") from e
        finally:
            # The SSL context holds the loaded key material
            for path in written:
                pem_files.cleanup(path)
        return config

    @staticmethod
    def _pem_path(value: str, pem_files: TempArtifactManager, written: List[str]) -> str:
        if not is_pem_text(value):
            return value
        path = pem_files.allocate()
        written.append(path)
        Path(path).write_text(value, encoding='utf-8')
        return path

    async def _wait_started(self, server: uvicorn.Server, task: asyncio.Task):
        while not server.started:
            if task.done():
                error = None if task.cancelled() else task.exception()
                raise ServerStartError(f"Server exited during startup: {error or 'cancelled'}")
            await asyncio.sleep(0.05)

    @staticmethod
    def _format_address(address: Optional[Tuple[Any, ...]]) -> str:
        if not address:
            return "-"
        return f"{address[0]}:{address[1]}"

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self.state.status,
            "address": self._format_address(self.state.address),
            "open_connections": len(self.state.open_connections),
        }
