"""
routekit.tier1_runtime.middleware
──────────────────────────────────
Server filters and the WSGI bridge.

A Filter wraps a Handler and returns a Handler. The default stack applied
by the server transport, outermost first:

    catch_all              unhandled error → logged, JSON 500
    cors(PERMISSIVE)       answers preflight, adds Access-Control-* headers
    catch_binding_failure  BindingError → JSON 400
    compress               gzip responses, gunzip request bodies

WSGIAdapter turns the filtered Handler into a WSGI application, binding a
RequestContext for every request and logging its completion.
"""
from __future__ import annotations

import gzip
import time
import uuid
import zlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from http import HTTPStatus
from typing import Any

from routekit.tier0_core.errors import BindingError, LengthRequiredError, RouteKitError
from routekit.tier0_core.http import HTTP, Handler, Request, Response, error_response, parse_query
from routekit.tier0_core.logging import get_logger
from routekit.tier1_runtime.context import RequestContext, clear_request_context, set_context

Filter = Callable[[Handler], Handler]

logger = get_logger(__name__)


def apply_filters(handler: Handler, *filters: Filter) -> Handler:
    """Wrap ``handler`` so that the first filter given is the outermost."""
    for wrap in reversed(filters):
        handler = wrap(handler)
    return handler


# ── Error translation ──────────────────────────────────────────────────────

def catch_all(next_handler: Handler) -> Handler:
    """Turn any error escaping the handler into a well-formed response."""

    def handler(request: Request) -> Response:
        try:
            return next_handler(request)
        except RouteKitError as exc:
            logger.error(
                "request.failed",
                code=exc.code,
                detail=exc.detail,
                status=exc.status_code,
            )
            return error_response(exc.status_code, exc.to_dict())
        except Exception:
            logger.exception("request.unhandled_error")
            return error_response(HTTP.INTERNAL_SERVER_ERROR, RouteKitError().to_dict())

    return handler


def catch_binding_failure(next_handler: Handler) -> Handler:
    """Answer 400 when a request body cannot be bound to its route's type."""

    def handler(request: Request) -> Response:
        try:
            return next_handler(request)
        except BindingError as exc:
            return error_response(exc.status_code, exc.to_dict())

    return handler


# ── CORS ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CorsPolicy:
    origins: tuple[str, ...] = ("*",)
    headers: tuple[str, ...] = ("content-type",)
    methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    credentials: bool = False

    def allow_origin(self, origin: str | None) -> str:
        if "*" in self.origins:
            return "*"
        if origin in self.origins:
            return origin
        return "null"


PERMISSIVE = CorsPolicy(
    origins=("*",),
    headers=("content-type",),
    methods=("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"),
    credentials=True,
)


def cors(policy: CorsPolicy = PERMISSIVE) -> Filter:
    """Filter applying ``policy``; OPTIONS preflight never reaches the routes."""

    def wrap(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            if request.method == "OPTIONS":
                response = Response(HTTP.OK)
            else:
                response = next_handler(request)
            response = (
                response
                .replace_header("Access-Control-Allow-Origin", policy.allow_origin(request.header("origin")))
                .replace_header("Access-Control-Allow-Headers", ", ".join(policy.headers))
                .replace_header("Access-Control-Allow-Methods", ", ".join(policy.methods))
            )
            if policy.credentials:
                response = response.replace_header("Access-Control-Allow-Credentials", "true")
            return response

        return handler

    return wrap


# ── Compression ────────────────────────────────────────────────────────────

def compress(next_handler: Handler) -> Handler:
    """Gzip response bodies for clients that accept it; gunzip gzip request bodies."""

    def handler(request: Request) -> Response:
        if (request.header("content-encoding") or "").lower() == "gzip" and request.body:
            try:
                body = gzip.decompress(request.body)
            except (OSError, EOFError, zlib.error) as exc:
                raise BindingError(user_message="Request body is not valid gzip.") from exc
            headers = {k: v for k, v in request.headers.items() if k != "content-encoding"}
            request = replace(request, body=body, headers=headers)

        response = next_handler(request)

        accepts_gzip = "gzip" in (request.header("accept-encoding") or "").lower()
        if accepts_gzip and response.body and response.header("content-encoding") is None:
            response = (
                response
                .with_header("Content-Encoding", "gzip")
                .with_header("Vary", "Accept-Encoding")
                .with_body(gzip.compress(response.body))
            )
        return response

    return handler


def server_filters(policy: CorsPolicy = PERMISSIVE) -> list[Filter]:
    """The filter stack every served handler is wrapped in, outermost first."""
    return [catch_all, cors(policy), catch_binding_failure, compress]


# ── WSGI bridge ────────────────────────────────────────────────────────────

class WSGIAdapter:
    """
    WSGI application serving a single Handler.

    Request bodies are read by Content-Length. A chunked body carries none, so
    it is read to EOF when the server has already buffered and terminated the
    input (``input_terminated=True``, or the ``wsgi.input_terminated`` environ
    flag); otherwise the request is answered 411 Length Required.

    Usage::

        app = WSGIAdapter(apply_filters(table, *server_filters()))
        wsgiref.simple_server.make_server("", 8085, app).serve_forever()
    """

    def __init__(self, handler: Handler, input_terminated: bool = False) -> None:
        self.handler = handler
        self.input_terminated = input_terminated

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        request_id = environ.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        try:
            request = request_from_environ(environ, input_terminated=self.input_terminated)
        except LengthRequiredError as exc:
            logger.info(
                "request.rejected",
                code=exc.code,
                method=environ.get("REQUEST_METHOD"),
                path=environ.get("PATH_INFO"),
            )
            response = error_response(exc.status_code, exc.to_dict())
            return _respond(start_response, response, request_id, head=False)

        set_context(RequestContext(request_id=request_id, method=request.method, path=request.path))
        start = time.perf_counter()
        status = HTTP.INTERNAL_SERVER_ERROR
        try:
            response = self.handler(request)
            status = response.status
        finally:
            logger.info(
                "request.completed",
                status=status,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            clear_request_context()

        return _respond(start_response, response, request_id, head=request.method == "HEAD")


def _respond(start_response: Callable, response: Response, request_id: str, head: bool) -> list[bytes]:
    headers = [
        (name, str(value))
        for name, value in response.headers
        if name.lower() != "content-length"
    ]
    headers.append(("Content-Length", str(len(response.body))))
    headers.append(("X-Request-Id", request_id))
    start_response(_status_line(response.status), headers)
    return [b""] if head else [response.body]


def request_from_environ(environ: dict[str, Any], input_terminated: bool = False) -> Request:
    """
    Build a Request from a WSGI environ, reading the whole body.
    Raises LengthRequiredError for a chunked body the server left unframed.
    """
    headers: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").lower()] = value
    if environ.get("CONTENT_TYPE"):
        headers["content-type"] = environ["CONTENT_TYPE"]
    if environ.get("CONTENT_LENGTH"):
        headers["content-length"] = environ["CONTENT_LENGTH"]

    stream = environ["wsgi.input"]
    if environ.get("CONTENT_LENGTH"):
        try:
            length = int(environ["CONTENT_LENGTH"])
        except ValueError:
            length = 0
        body = stream.read(length) if length > 0 else b""
    elif "chunked" in headers.get("transfer-encoding", "").lower():
        if not (input_terminated or environ.get("wsgi.input_terminated")):
            raise LengthRequiredError(user_message="Chunked request bodies need a Content-Length here.")
        body = stream.read()
    else:
        body = b""

    path = environ.get("PATH_INFO") or "/"
    # PEP 3333 hands PATH_INFO over as latin-1 decoded bytes
    path = path.encode("latin-1").decode("utf-8", "replace")

    return Request(
        method=environ.get("REQUEST_METHOD", "GET").upper(),
        path=path,
        query=parse_query(environ.get("QUERY_STRING", "")),
        headers=headers,
        body=body,
    )


def _status_line(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return f"{status} Unknown"


__all__ = [
    "Filter",
    "apply_filters",
    "catch_all",
    "catch_binding_failure",
    "CorsPolicy",
    "PERMISSIVE",
    "cors",
    "compress",
    "server_filters",
    "WSGIAdapter",
    "request_from_environ",
]
