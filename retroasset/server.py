"""Server lifecycle: bind, serve until stopped, graceful shutdown."""

from __future__ import annotations

import logging
import socket

import httpx
import uvicorn
from fastapi import FastAPI

from retroasset.config import Settings

logger = logging.getLogger(__name__)


class _GracefulServer(uvicorn.Server):
    """uvicorn server that treats SIGINT / SIGTERM as a plain stop request.

    Stock uvicorn re-raises the captured signal after its graceful shutdown,
    which kills the process (143 for SIGTERM) instead of returning.
    """

    def handle_exit(self, sig: int, frame) -> None:
        super().handle_exit(sig, frame)
        self._captured_signals.clear()


class AssetServer:
    """uvicorn server bound to the configured listen address.

    ``start()`` blocks. It returns normally once the server was asked to stop
    (``shutdown()``, SIGINT or SIGTERM) and raises ``OSError`` if the address
    cannot be bound. Shutdown stops accepting connections and waits for
    in-flight requests to finish.
    """

    def __init__(self, app: FastAPI, host: str, port: int, *, log_level: str = "info"):
        self.app = app
        self.host = host
        self.port = port
        self._server = _GracefulServer(uvicorn.Config(app, log_level=log_level, lifespan="on"))
        self._socket: socket.socket | None = None

    @property
    def address(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.bound_port}"

    @property
    def started(self) -> bool:
        return self._server.started

    @property
    def bound_port(self) -> int:
        if self._socket is None:
            return self.port
        return self._socket.getsockname()[1]

    def bind(self) -> socket.socket:
        """Bind the listening socket; raises ``OSError`` (fatal) on failure."""
        if self._socket is None:
            if not self.host and socket.has_dualstack_ipv6():
                self._socket = socket.create_server(
                    ("", self.port), family=socket.AF_INET6, dualstack_ipv6=True,
                )
            else:
                family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
                self._socket = socket.create_server((self.host, self.port), family=family)
        return self._socket

    def start(self) -> None:
        sock = self.bind()
        logger.info("Listening on %s", self.address)
        try:
            self._server.run(sockets=[sock])
        finally:
            sock.close()
            self._socket = None
        logger.info("Server stopped")

    def shutdown(self) -> None:
        """Ask the server to stop; in-flight requests are allowed to finish."""
        self._server.should_exit = True


def build_server(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AssetServer:
    from retroasset.main import create_app

    app = create_app(settings, transport=transport)
    return AssetServer(
        app,
        settings.listen_host,
        settings.listen_port,
        log_level=settings.log_level.lower(),
    )
