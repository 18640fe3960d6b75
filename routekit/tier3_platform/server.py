"""
routekit.tier3_platform.server
───────────────────────────────
Serves one composed Handler over HTTP. The handler is wrapped in the default
server filters (error translation, permissive CORS, gzip) and exposed as a
WSGI application on one of two interchangeable backends.

Select via:  ROUTEKIT_SERVER_BACKEND=wsgiref|uvicorn
             ROUTEKIT_SERVER_PORT (default 8085; 0 picks a free port)

Usage:
    server = listen(build_routes(routes=[...]), port=8086)
    ...
    server.stop()
    server.close()

    # or
    with as_server(table, backend=ServerBackend.UVICORN) as server:
        ...
"""
from __future__ import annotations

import socket
import threading
import time
from enum import Enum
from socketserver import ThreadingMixIn
from types import TracebackType
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from routekit.tier0_core.config import get_config
from routekit.tier0_core.errors import ConfigurationError
from routekit.tier0_core.http import Handler
from routekit.tier0_core.logging import get_logger
from routekit.tier1_runtime.middleware import WSGIAdapter, apply_filters, server_filters

logger = get_logger(__name__)

_STARTUP_TIMEOUT = 10.0


class ServerBackend(str, Enum):
    WSGIREF = "wsgiref"
    UVICORN = "uvicorn"

    @classmethod
    def parse(cls, value: ServerBackend | str) -> ServerBackend:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                user_message=f"Unknown server backend: {value!r}",
                backend=str(value),
            ) from None


# ── Backends ───────────────────────────────────────────────────────────────

class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True
    allow_reuse_address = True


class _QuietRequestHandler(WSGIRequestHandler):
    # access lines come from WSGIAdapter's request.completed event
    def log_message(self, format: str, *args: Any) -> None:
        return


class _WsgirefRunner:
    def __init__(self, app: WSGIAdapter, host: str, port: int) -> None:
        self._httpd = make_server(
            host,
            port,
            app,
            server_class=_ThreadingWSGIServer,
            handler_class=_QuietRequestHandler,
        )
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self._httpd.server_port

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name=f"routekit-wsgiref-{self.port}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join()
            self._thread = None

    def close(self) -> None:
        self._httpd.server_close()


class _UvicornRunner:
    def __init__(self, app: WSGIAdapter, host: str, port: int) -> None:
        import uvicorn
        from asgiref.wsgi import WsgiToAsgi

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((host, port))
        self._port = self._sock.getsockname()[1]
        config = uvicorn.Config(
            WsgiToAsgi(app),
            lifespan="off",
            log_config=None,
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self._port

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [self._sock]},
            name=f"routekit-uvicorn-{self.port}",
            daemon=True,
        )
        self._thread.start()
        deadline = time.monotonic() + _STARTUP_TIMEOUT
        while not self._server.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                raise ConfigurationError(
                    user_message=f"uvicorn failed to start on port {self.port}",
                    backend=ServerBackend.UVICORN.value,
                )
            time.sleep(0.01)

    def stop(self) -> None:
        if self._thread is not None:
            self._server.should_exit = True
            self._thread.join()
            self._thread = None

    def close(self) -> None:
        self._sock.close()


# ── Running server ─────────────────────────────────────────────────────────

class HttpServer:
    """A handler bound to a backend and port; ``start`` begins serving in the background."""

    def __init__(self, handler: Handler, backend: ServerBackend, host: str, port: int) -> None:
        self.backend = backend
        # asgiref buffers the whole request body before calling the app
        self.app = WSGIAdapter(
            apply_filters(handler, *server_filters()),
            input_terminated=backend is ServerBackend.UVICORN,
        )
        if backend is ServerBackend.WSGIREF:
            self._runner: _WsgirefRunner | _UvicornRunner = _WsgirefRunner(self.app, host, port)
        else:
            self._runner = _UvicornRunner(self.app, host, port)
        self._running = False

    @property
    def port(self) -> int:
        return self._runner.port

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> HttpServer:
        if not self._running:
            self._runner.start()
            self._running = True
            logger.info("server.started", backend=self.backend.value, port=self.port)
        return self

    def stop(self) -> HttpServer:
        if self._running:
            self._runner.stop()
            self._running = False
            logger.info("server.stopped", backend=self.backend.value, port=self.port)
        return self

    def close(self) -> None:
        self.stop()
        self._runner.close()

    def __enter__(self) -> HttpServer:
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def as_server(
    handler: Handler,
    backend: ServerBackend | str | None = None,
    port: int | None = None,
    host: str | None = None,
) -> HttpServer:
    """
    Bind ``handler`` to a server without starting it.
    Unset arguments fall back to config (wsgiref, 0.0.0.0, port 8085).
    Raises ConfigurationError for an unknown backend.
    """
    config = get_config()
    selected = ServerBackend.parse(backend if backend is not None else config.server_backend)
    return HttpServer(
        handler,
        selected,
        host if host is not None else config.server_host,
        port if port is not None else config.server_port,
    )


def listen(
    handler: Handler,
    port: int | None = None,
    backend: ServerBackend | str | None = None,
    host: str | None = None,
) -> HttpServer:
    """Bind and start serving ``handler``; returns the running server."""
    return as_server(handler, backend=backend, port=port, host=host).start()


__all__ = ["ServerBackend", "HttpServer", "as_server", "listen"]
