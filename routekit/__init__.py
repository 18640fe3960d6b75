"""
routekit
────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from routekit.tier0_core.logging import configure_logging, get_logger
from routekit.tier0_core.errors import (
    RouteKitError,
    ConfigurationError,
    DecodeError,
    BindingError,
    LengthRequiredError,
    ClientError,
    ErrorResponseBody,
)
from routekit.tier0_core.config import get_config, RouteKitConfig
from routekit.tier0_core.http import HTTP, Method, Request, Response, Handler

from routekit.tier1_runtime.context import get_context, set_context, RequestContext
from routekit.tier1_runtime.serialize import Codec, JsonCodec, serialize, deserialize
from routekit.tier1_runtime.routing import (
    Route,
    RouteTable,
    api_route,
    get_api_route,
    post_api_route,
    post_api_route_for_request,
    build_routes,
)
from routekit.tier1_runtime.middleware import (
    CorsPolicy,
    PERMISSIVE,
    WSGIAdapter,
    apply_filters,
    server_filters,
)

from routekit.tier2_reliability.health import service_check

from routekit.tier3_platform.api_client import ApiClient
from routekit.tier3_platform.server import ServerBackend, HttpServer, as_server, listen

__version__ = "0.1.0"
__all__ = [
    # logging
    "get_logger", "configure_logging",
    # errors
    "RouteKitError", "ConfigurationError", "DecodeError", "BindingError",
    "LengthRequiredError", "ClientError", "ErrorResponseBody",
    # config
    "get_config", "RouteKitConfig",
    # http
    "HTTP", "Method", "Request", "Response", "Handler",
    # context
    "get_context", "set_context", "RequestContext",
    # serialize
    "Codec", "JsonCodec", "serialize", "deserialize",
    # routing
    "Route", "RouteTable", "api_route", "get_api_route", "post_api_route",
    "post_api_route_for_request", "build_routes",
    # middleware
    "CorsPolicy", "PERMISSIVE", "WSGIAdapter", "apply_filters", "server_filters",
    # health
    "service_check",
    # client
    "ApiClient",
    # server
    "ServerBackend", "HttpServer", "as_server", "listen",
]
