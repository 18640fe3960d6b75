"""
routekit.tier0_core.http
─────────────────────────
HTTP primitives shared by routing, filters, the server transport and the
client: status codes, the supported request methods, and the abstract
Request/Response pair every Handler works with.

A Request is created once per inbound call and never mutated. A Response is
built by chaining ``with_*`` calls, each returning a new frozen value.
"""
from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, urlsplit

from routekit.tier0_core.errors import ConfigurationError

APPLICATION_JSON = "application/json"
TEXT_PLAIN = "text/plain; charset=utf-8"


# ── Status code constants ──────────────────────────────────────────────────

class HTTP:
    """Standard HTTP status codes used across routekit."""

    # 2xx
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 4xx
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    LENGTH_REQUIRED = 411
    UNPROCESSABLE_ENTITY = 422

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503


# ── Methods ────────────────────────────────────────────────────────────────

class Method(str, Enum):
    """Request methods a route or an outbound call may use."""

    GET = "GET"
    POST = "POST"

    @classmethod
    def parse(cls, value: Method | str) -> Method:
        """Return the Method for ``value`` or raise ConfigurationError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigurationError(
                user_message=f"Unsupported request method: {value!r}",
                method=str(value),
            ) from None


# ── Request ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Request:
    """An inbound HTTP request, read-only once constructed."""

    method: str
    path: str
    query: dict[str, tuple[str, ...]] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def of(
        cls,
        method: Method | str,
        target: str,
        body: bytes | str = b"",
        headers: dict[str, str] | None = None,
    ) -> Request:
        """
        Build a Request from a method and a request target.

        Usage:
            Request.of("GET", "/getApiMsg?id=11&name=Ram")
        """
        parts = urlsplit(target)
        method_name = method.value if isinstance(method, Method) else str(method).upper()
        return cls(
            method=method_name,
            path=parts.path or "/",
            query=parse_query(parts.query),
            headers={k.lower(): v for k, v in (headers or {}).items()},
            body=body.encode("utf-8") if isinstance(body, str) else body,
        )

    def query_param(self, name: str) -> str | None:
        values = self.query.get(name)
        return values[0] if values else None

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


def parse_query(query: str) -> dict[str, tuple[str, ...]]:
    return {
        name: tuple(values)
        for name, values in parse_qs(query, keep_blank_values=True).items()
    }


# ── Response ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Response:
    """An HTTP response. ``with_*`` methods return modified copies."""

    status: int
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=self.headers + ((name, value),))

    def replace_header(self, name: str, value: str) -> Response:
        return self.without_header(name).with_header(name, value)

    def without_header(self, name: str) -> Response:
        lowered = name.lower()
        return replace(
            self,
            headers=tuple((k, v) for k, v in self.headers if k.lower() != lowered),
        )

    def with_body(self, body: bytes | str) -> Response:
        if isinstance(body, str):
            body = body.encode("utf-8")
        return replace(self, body=body)

    def with_json(self, body: bytes) -> Response:
        return self.replace_header("Content-Type", APPLICATION_JSON).with_body(body)

    def header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Handler = Callable[[Request], Response]


# ── Response helpers ───────────────────────────────────────────────────────

def text_response(text: str, status: int = HTTP.OK) -> Response:
    return Response(status).with_header("Content-Type", TEXT_PLAIN).with_body(text)


def json_response(body: bytes, status: int = HTTP.OK) -> Response:
    return Response(status).with_json(body)


def not_found(message: str = "Route not found") -> Response:
    return text_response(message, status=HTTP.NOT_FOUND)


def error_response(status: int, payload: dict[str, Any]) -> Response:
    """Render an error payload (see RouteKitError.to_dict) as a JSON response."""
    return json_response(json.dumps(payload).encode("utf-8"), status=status)


__all__ = [
    "APPLICATION_JSON",
    "TEXT_PLAIN",
    "HTTP",
    "Method",
    "Request",
    "Response",
    "Handler",
    "parse_query",
    "text_response",
    "json_response",
    "not_found",
    "error_response",
]
