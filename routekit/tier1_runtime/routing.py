"""
routekit.tier1_runtime.routing
───────────────────────────────
Declarative routes: (method, path) → handler, composed into one immutable
RouteTable that is itself a Handler.

Typed POST routes bind the request body through a codec before the business
function runs. A body that does not decode raises BindingError and the
business function is never called; the server filters turn that into a 400.

Usage:
    table = build_routes("orders", [
        get_api_route("/orders", list_orders),
        post_api_route("/orders", JsonCodec(NewOrder), create_order,
                       output=JsonCodec(Order)),
        service_check(),
    ])
    response = table(Request.of("GET", "/orders"))
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeVar

from routekit.tier0_core.errors import BindingError, ConfigurationError, DecodeError
from routekit.tier0_core.http import HTTP, Handler, Method, Request, Response, not_found
from routekit.tier0_core.logging import get_logger
from routekit.tier1_runtime.serialize import Codec

T = TypeVar("T")

logger = get_logger(__name__)


# ── Route ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Route:
    """
    A single (method, path) → handler binding.

    The method is parsed and the path given a leading "/" on construction, so
    a Route for anything but GET or POST never exists.
    """
    method: Method
    path: str
    handler: Handler

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", Method.parse(self.method))
        object.__setattr__(self, "path", _normalize_path(self.path))

    @property
    def key(self) -> tuple[Method, str]:
        return (self.method, self.path)


def _normalize_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return path


# ── Route table ────────────────────────────────────────────────────────────

class RouteTable:
    """
    Immutable union of routes. Dispatch is exact string equality on method
    and path; there are no wildcards or path parameters.

    Built once at startup and only read afterwards, so concurrent dispatches
    share it without locking.
    """

    def __init__(self, routes: Iterable[Route] = ()) -> None:
        index: dict[tuple[Method, str], Route] = {}
        for route in routes:
            if route.key in index:
                raise ConfigurationError(
                    user_message=(
                        f"Duplicate route: {route.method.value} {route.path}"
                    ),
                    method=route.method.value,
                    path=route.path,
                )
            index[route.key] = route
        self._index = MappingProxyType(index)

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._index.values())

    def register(self, method: Method | str, path: str, handler: Handler) -> RouteTable:
        """Return a new table with one more route; this table is unchanged."""
        return self.with_routes(api_route(method, path, handler))

    def with_routes(self, *routes: Route) -> RouteTable:
        return RouteTable(self.routes + routes)

    def union(self, other: RouteTable) -> RouteTable:
        return RouteTable(self.routes + other.routes)

    def dispatch(self, request: Request) -> Response:
        try:
            method = Method(request.method)
        except ValueError:
            return not_found()
        route = self._index.get((method, request.path))
        if route is None:
            return not_found()
        return route.handler(request)

    __call__ = dispatch

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        method, path = key
        try:
            return (Method.parse(method), _normalize_path(path)) in self._index
        except ConfigurationError:
            return False

    def __repr__(self) -> str:
        pairs = ", ".join(f"{m.value} {p}" for m, p in self._index)
        return f"RouteTable([{pairs}])"


# ── Handler adapters ───────────────────────────────────────────────────────

def api_route(method: Method | str, path: str, handler: Handler) -> Route:
    """
    Bind ``handler`` to ``method`` and ``path``.
    Raises ConfigurationError immediately for anything but GET or POST.
    """
    return Route(method, path, handler)


def get_api_route(
    path: str,
    function: Callable[[Request], Any],
    *,
    output: Codec[Any] | None = None,
) -> Route:
    """
    GET route. ``function`` receives the raw Request (query parameters,
    headers). With ``output`` it returns a value rendered as JSON, otherwise
    it returns a Response.

    Example: get_api_route("/msg", process_message)
    """
    def handler(request: Request) -> Response:
        return _render(function(request), output)

    return api_route(Method.GET, path, handler)


def post_api_route(
    path: str,
    body: Codec[T],
    function: Callable[[T], Any],
    *,
    output: Codec[Any] | None = None,
) -> Route:
    """
    POST route with a typed body. The request body is decoded with ``body``
    before ``function`` runs; a mismatch raises BindingError and ``function``
    is not called.

    Example: post_api_route("/postMsg", JsonCodec(TestData), process_post_message)
    """
    def handler(request: Request) -> Response:
        value = bind_body(request, body)
        return _render(function(value), output)

    return api_route(Method.POST, path, handler)


def post_api_route_for_request(
    path: str,
    function: Callable[[Request], Any],
    *,
    output: Codec[Any] | None = None,
) -> Route:
    """POST route whose ``function`` reads the raw Request itself."""
    def handler(request: Request) -> Response:
        return _render(function(request), output)

    return api_route(Method.POST, path, handler)


def bind_body(request: Request, codec: Codec[T]) -> T:
    """Decode the request body with ``codec`` or raise BindingError."""
    try:
        return codec.decode(request.body)
    except DecodeError as exc:
        logger.info(
            "request.binding_failed",
            path=request.path,
            fields=exc.fields,
        )
        raise BindingError(
            user_message=exc.user_message,
            fields=exc.fields,
        ) from exc


def _render(result: Any, output: Codec[Any] | None) -> Response:
    if output is None:
        if not isinstance(result, Response):
            raise TypeError(
                f"Route function returned {type(result).__name__}; "
                "return a Response or pass an output codec"
            )
        return result
    return Response(HTTP.OK).with_json(output.encode(result))


# ── Composition ────────────────────────────────────────────────────────────

def build_routes(app_name: str = "", routes: Iterable[Route] = ()) -> RouteTable:
    """
    Aggregate ``routes`` into one dispatchable RouteTable.
    An empty sequence is valid and yields a table that always answers 404.

    Example:
        build_routes(routes=[
            get_api_route("/msg", process_message),
            post_api_route("/postMsg", JsonCodec(TestData), process_post_msg),
        ])
    """
    table = RouteTable(routes)
    logger.info(
        "routes.built",
        app_name=app_name,
        route_count=len(table),
        routes=[f"{route.method.value} {route.path}" for route in table.routes],
    )
    return table


__all__ = [
    "Route",
    "RouteTable",
    "api_route",
    "get_api_route",
    "post_api_route",
    "post_api_route_for_request",
    "bind_body",
    "build_routes",
]
