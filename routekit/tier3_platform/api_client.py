"""
routekit.tier3_platform.api_client
───────────────────────────────────
Blocking HTTP client for calling other services. Each call converts the
response body into a typed value through a codec passed at the call site,
and every failure (non-success status, timeout, transport error, undecodable
body) surfaces as a single ClientError.

The response stream is owned by the call that opened it and is closed on
every exit path before ``call`` returns: error bodies are drained then closed,
success bodies are consumed by the codec inside the same scope.

Backed by: httpx (sync client, streaming responses).

Usage::

    with ApiClient() as client:
        order = client.get(
            "http://orders:8085/order?id=7",
            resource="BillingService.load_order",
            error_context="Not able to fetch order 7",
            codec=JsonCodec(Order),
        )
"""
from __future__ import annotations

from types import TracebackType
from typing import TypeVar

import httpx

from routekit.tier0_core.config import get_config
from routekit.tier0_core.errors import ClientError, ConfigurationError, DecodeError, ErrorResponseBody
from routekit.tier0_core.http import APPLICATION_JSON, Method
from routekit.tier0_core.logging import get_logger
from routekit.tier1_runtime.context import get_context
from routekit.tier1_runtime.serialize import Codec

T = TypeVar("T")

logger = get_logger(__name__)


class ApiClient:
    """
    Outbound call helper over an injected (or self-owned) httpx.Client.

    Pass ``client`` to share a connection pool or to test against
    ``httpx.MockTransport``; otherwise a client with a ``timeout``-second
    connect/read/write/pool timeout is created (config ``client_timeout``,
    60s by default) and closed with this ApiClient.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        if client is None:
            seconds = timeout if timeout is not None else get_config().client_timeout
            client = httpx.Client(timeout=httpx.Timeout(seconds))
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    # ── Calls ───────────────────────────────────────────────────────────────

    def call(
        self,
        method: Method | str,
        url: str,
        resource: str,
        error_context: str,
        codec: Codec[T],
        body: str | bytes | None = None,
    ) -> T:
        """
        Execute ``method`` against ``url`` and decode the body with ``codec``.

        Args:
            method:         Method.GET or Method.POST; anything else raises
                            ConfigurationError before any network I/O.
            url:            Absolute URL to call.
            resource:       Logical name of the caller, carried by ClientError.
            error_context:  Human-readable context, carried by ClientError.
            codec:          Converts the success body into the result type.
            body:           POST body (JSON text or bytes). GET carries none.

        Inside a served request the current request id is forwarded as
        X-Request-Id.

        Raises:
            ClientError: status_or_field is the HTTP status (``"500"``) for a
                non-success response, else ``"timeout"``, ``"transport"`` or
                ``"body"`` (success body did not decode).
        """
        kind = Method.parse(method)
        headers: dict[str, str] = {}
        ctx = get_context()
        if ctx is not None:
            headers["X-Request-Id"] = ctx.request_id
        content: bytes | None = None
        if kind is Method.POST:
            headers["Content-Type"] = APPLICATION_JSON
            content = body.encode("utf-8") if isinstance(body, str) else (body or b"")
        elif body is not None:
            raise ConfigurationError(
                user_message="GET calls carry no body.",
                resource=resource,
            )

        try:
            with self._client.stream(kind.value, url, content=content, headers=headers) as response:
                _raise_for_status(response, resource, error_context)
                try:
                    return codec.decode_stream(response.iter_bytes())
                except DecodeError as exc:
                    raise _failed(resource, "body", error_context, url, exc) from exc
        except httpx.TimeoutException as exc:
            raise _failed(resource, "timeout", error_context, url, exc) from exc
        except httpx.HTTPError as exc:
            raise _failed(resource, "transport", error_context, url, exc) from exc

    def get(self, url: str, resource: str, error_context: str, codec: Codec[T]) -> T:
        return self.call(Method.GET, url, resource, error_context, codec)

    def post(
        self,
        url: str,
        resource: str,
        error_context: str,
        codec: Codec[T],
        body: str | bytes = b"",
    ) -> T:
        return self.call(Method.POST, url, resource, error_context, codec, body)

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


# ── Error handling ─────────────────────────────────────────────────────────

def _raise_for_status(response: httpx.Response, resource: str, error_context: str) -> None:
    """
    Raise ClientError for a non-success response after draining its body.
    The caller's ``with`` scope closes the response afterwards.
    """
    if response.is_success:
        return
    status = str(response.status_code)
    url = str(response.request.url)
    try:
        raw = response.read()
    except httpx.HTTPError as exc:
        raise _failed(resource, status, error_context, url, exc) from exc
    error_body = ErrorResponseBody(raw.decode(response.encoding or "utf-8", errors="replace"))
    raise _failed(resource, status, error_context, url, error_body) from error_body


def _failed(
    resource: str,
    status_or_field: str,
    error_context: str,
    url: str,
    cause: BaseException,
) -> ClientError:
    logger.warning(
        "client.call_failed",
        resource=resource,
        status_or_field=status_or_field,
        url=url,
        cause=str(cause),
    )
    return ClientError(resource, status_or_field, error_context, cause=cause)


__all__ = ["ApiClient"]
