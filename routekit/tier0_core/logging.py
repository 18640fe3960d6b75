"""
routekit.tier0_core.logging
────────────────────────────
structlog output for routekit. Level, renderer and service name are read from
RouteKitConfig, so ROUTEKIT_LOG_LEVEL, ROUTEKIT_LOG_FORMAT=json|console and
ROUTEKIT_APP_NAME all flow through the same validated settings.

Every event carries the request context bound via contextvars (request_id,
method, path). Credential-bearing keys are masked before rendering, including
inside header mappings.

Usage:
    logger = get_logger(__name__)
    logger.info("routes.built", route_count=4)
"""
from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

from routekit.tier0_core.config import get_config


# ── Redaction ────────────────────────────────────────────────────────────────

_SENSITIVE = frozenset({
    "authorization", "proxy-authorization", "cookie", "set-cookie",
    "token", "access_token", "password", "secret", "client_secret",
    "api_key", "x-api-key",
})

_REDACTED = "[REDACTED]"


def _redact_processor(logger: Any, method: str, event_dict: dict) -> dict:
    for key, value in event_dict.items():
        if key.lower() in _SENSITIVE:
            event_dict[key] = _REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _REDACTED if str(k).lower() in _SENSITIVE else v
                for k, v in value.items()
            }
    return event_dict


def _service_processor(service: str) -> Any:
    def add_service(logger: Any, method: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


# ── Setup ────────────────────────────────────────────────────────────────────

_handler: logging.Handler | None = None


def configure_logging(stream: TextIO | None = None) -> None:
    """
    Apply the logging settings of the current config, writing to ``stream``
    (stdout by default). A later call replaces the handler installed by the
    previous one.
    """
    global _handler
    config = get_config()
    level = getattr(logging, config.log_level)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_processor(config.app_name),
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_processor,
    ]
    if config.log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stdlib records (uvicorn, wsgiref) share the pre-chain and renderer
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _handler = handler


# ── Public API ───────────────────────────────────────────────────────────────

def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structured logger, configuring output on first use."""
    if _handler is None:
        configure_logging()
    return structlog.get_logger(name or __name__)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)
