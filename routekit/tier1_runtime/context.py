"""
routekit.tier1_runtime.context
───────────────────────────────
Request context — correlation id plus the method and path being served,
propagated into every log line emitted while the request is handled.

Uses Python contextvars, so concurrent requests served on different threads
(or tasks) never see each other's context.
"""
from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field

import structlog

from routekit.tier0_core.logging import bind_context


# ── Domain model ─────────────────────────────────────────────────────────────

@dataclass
class RequestContext:
    """Per-request metadata available throughout the request lifecycle."""
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    method: str | None = None
    path: str | None = None


# ── ContextVar storage ────────────────────────────────────────────────────────

_ctx: ContextVar[RequestContext | None] = ContextVar(
    "routekit_request_context",
    default=None,
)


# ── Public API ────────────────────────────────────────────────────────────────

def get_context() -> RequestContext | None:
    """Return the current request context, or None outside a request."""
    return _ctx.get()


def set_context(ctx: RequestContext) -> None:
    """Set the request context for the current scope and bind it to the logs."""
    _ctx.set(ctx)
    bind_context(request_id=ctx.request_id, method=ctx.method, path=ctx.path)


def clear_request_context() -> None:
    _ctx.set(None)
    structlog.contextvars.unbind_contextvars("request_id", "method", "path")
