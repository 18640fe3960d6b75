"""
routekit.tier2_reliability.health
──────────────────────────────────
Liveness route for load balancers and orchestrators. It is kept apart from
user routes; add it explicitly when composing a service.

Usage:
    table = build_routes("orders", [*order_routes, service_check()])
"""
from __future__ import annotations

from routekit.tier0_core.http import Method, Request, Response, text_response
from routekit.tier1_runtime.routing import Route, api_route

HEALTHCHECK_PATH = "/healthcheck"
HEALTHY_MESSAGE = "Service is up.."


def healthcheck(request: Request) -> Response:
    """Always 200 while the process is able to serve requests."""
    return text_response(HEALTHY_MESSAGE)


def service_check(path: str = HEALTHCHECK_PATH) -> Route:
    return api_route(Method.GET, path, healthcheck)


__all__ = ["HEALTHCHECK_PATH", "HEALTHY_MESSAGE", "healthcheck", "service_check"]
