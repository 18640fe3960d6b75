"""
routekit.tier0_core.errors
───────────────────────────
Standard error taxonomy for routing and outbound calls. Setup-time problems
raise ConfigurationError synchronously; per-request binding failures raise
BindingError and are turned into 4xx responses by the server filters;
outbound failures raise ClientError and always reach the caller.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class RouteKitError(Exception):
    """
    Base class for all routekit errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: safe to surface to API clients
    - detail: internal context, never shown to clients
    - status_code: HTTP status code used when rendered as a response
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "An unexpected error occurred.",
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
            }
        }


# ── Setup-time errors ─────────────────────────────────────────────────────────

class ConfigurationError(RouteKitError):
    """Misconfiguration detected at setup (unsupported method, unknown backend, duplicate route)."""
    status_code = 500
    code = "configuration_error"


# ── Body conversion errors ────────────────────────────────────────────────────

class DecodeError(RouteKitError):
    """Bytes could not be decoded into the codec's target type."""
    status_code = 422
    code = "decode_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "Body could not be decoded.",
        fields: dict | None = None,
        **metadata: Any,
    ) -> None:
        self.fields = fields or {}
        super().__init__(code, user_message, **metadata)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.fields:
            d["error"]["fields"] = self.fields
        return d


class BindingError(DecodeError):
    """Inbound request body does not match the route's expected type."""
    status_code = 400
    code = "binding_error"


class LengthRequiredError(RouteKitError):
    """Chunked request body on a server that cannot frame it without Content-Length."""
    status_code = 411
    code = "length_required"


# ── Outbound call errors ──────────────────────────────────────────────────────

class ErrorResponseBody(Exception):
    """Raw body of a non-success upstream response, kept as the cause of a ClientError."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(body)


class ClientError(RouteKitError):
    """
    Outbound call failed: non-success status, transport failure, timeout, or an
    undecodable success body.

    ``status_or_field`` holds the HTTP status code as a string (``"500"``) or a
    field identifier (``"timeout"``, ``"transport"``, ``"body"``).
    """
    status_code = 502
    code = "client_error"

    def __init__(
        self,
        resource: str,
        status_or_field: str,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        self.resource = resource
        self.status_or_field = status_or_field
        self.message = message
        self.cause = cause
        super().__init__(
            user_message="Upstream call failed.",
            detail=f"{resource}: {message} [{status_or_field}]",
            resource=resource,
            status_or_field=status_or_field,
        )

    @property
    def status(self) -> int | None:
        """HTTP status of the failed call, or None when the failure had no status."""
        if self.status_or_field.isdigit():
            return int(self.status_or_field)
        return None


__all__ = [
    "RouteKitError",
    "ConfigurationError",
    "DecodeError",
    "BindingError",
    "LengthRequiredError",
    "ErrorResponseBody",
    "ClientError",
]
