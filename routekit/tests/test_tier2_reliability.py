"""Tests for tier2_reliability modules."""
from __future__ import annotations

from routekit.tier0_core.http import HTTP, Method, Request
from routekit.tier1_runtime.routing import build_routes
from routekit.tier2_reliability.health import HEALTHY_MESSAGE, service_check


class TestHealth:
    def test_service_check_route(self):
        route = service_check()
        assert route.method is Method.GET
        assert route.path == "/healthcheck"

    def test_healthcheck_answers_fixed_text(self):
        table = build_routes(routes=[service_check()])
        response = table(Request.of("GET", "/healthcheck"))
        assert response.status == HTTP.OK
        assert response.text == HEALTHY_MESSAGE == "Service is up.."

    def test_healthcheck_is_get_only(self):
        table = build_routes(routes=[service_check()])
        assert table(Request.of("POST", "/healthcheck")).status == HTTP.NOT_FOUND

    def test_not_added_implicitly(self):
        table = build_routes(routes=[])
        assert table(Request.of("GET", "/healthcheck")).status == HTTP.NOT_FOUND
