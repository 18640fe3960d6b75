"""Tests for tier0_core modules."""
from __future__ import annotations

import dataclasses
import io
import json

import pytest

from routekit.tier0_core.errors import (
    BindingError,
    ClientError,
    ConfigurationError,
    DecodeError,
    ErrorResponseBody,
    RouteKitError,
)
from routekit.tier0_core.http import (
    APPLICATION_JSON,
    HTTP,
    Method,
    Request,
    Response,
    error_response,
    not_found,
    text_response,
)


# ── errors ─────────────────────────────────────────────────────────────────

class TestErrors:
    def test_base_error_has_code(self):
        e = RouteKitError("custom_error", user_message="Something broke")
        assert e.code == "custom_error"
        assert "Something broke" in str(e)

    def test_configuration_error_subclass(self):
        e = ConfigurationError(user_message="Unknown backend")
        assert isinstance(e, RouteKitError)
        assert e.code == "configuration_error"

    def test_binding_error_is_client_side(self):
        e = BindingError(user_message="Bad body", fields={"name": "Field required"})
        assert isinstance(e, DecodeError)
        assert e.status_code == 400
        assert e.to_dict()["error"]["fields"] == {"name": "Field required"}

    def test_client_error_fields(self):
        cause = ErrorResponseBody("boom")
        e = ClientError("TestClientUtil", "500", "Not able to fetch", cause=cause)
        assert e.resource == "TestClientUtil"
        assert e.status_or_field == "500"
        assert e.message == "Not able to fetch"
        assert e.cause is cause
        assert e.status == 500
        assert "TestClientUtil" in str(e)

    def test_client_error_without_status(self):
        e = ClientError("TestClientUtil", "timeout", "Not able to fetch")
        assert e.status is None
        assert e.cause is None


# ── http ───────────────────────────────────────────────────────────────────

class TestMethod:
    def test_parse_accepts_enum_and_strings(self):
        assert Method.parse(Method.GET) is Method.GET
        assert Method.parse("post") is Method.POST

    @pytest.mark.parametrize("value", ["DELETE", "PUT", "", "PATCH"])
    def test_parse_rejects_other_methods(self, value):
        with pytest.raises(ConfigurationError):
            Method.parse(value)


class TestRequest:
    def test_of_parses_target(self):
        request = Request.of("get", "/getApiMsg?id=11&name=Ram")
        assert request.method == "GET"
        assert request.path == "/getApiMsg"
        assert request.query_param("id") == "11"
        assert request.query_param("name") == "Ram"
        assert request.query_param("missing") is None

    def test_repeated_and_blank_query_values(self):
        request = Request.of("GET", "/x?tag=a&tag=b&empty=")
        assert request.query["tag"] == ("a", "b")
        assert request.query_param("empty") == ""

    def test_headers_are_case_insensitive(self):
        request = Request.of("POST", "/x", body='{"a": 1}', headers={"Content-Type": APPLICATION_JSON})
        assert request.header("content-type") == APPLICATION_JSON
        assert request.header("CONTENT-TYPE") == APPLICATION_JSON
        assert request.body == b'{"a": 1}'

    def test_request_is_read_only(self):
        request = Request.of("GET", "/x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.path = "/y"  # type: ignore[misc]


class TestResponse:
    def test_built_incrementally_without_mutation(self):
        base = Response(HTTP.OK)
        built = base.with_header("X-Trace", "1").with_body("hello")
        assert base.headers == ()
        assert base.body == b""
        assert built.header("x-trace") == "1"
        assert built.text == "hello"

    def test_with_json_sets_content_type_once(self):
        response = Response(HTTP.OK).with_header("Content-Type", "text/plain").with_json(b"{}")
        assert response.header("Content-Type") == APPLICATION_JSON
        assert len([h for h in response.headers if h[0].lower() == "content-type"]) == 1

    def test_helpers(self):
        assert not_found().status == HTTP.NOT_FOUND
        assert text_response("ok").header("Content-Type").startswith("text/plain")
        err = error_response(400, {"error": {"code": "binding_error"}})
        assert err.status == 400
        assert b"binding_error" in err.body

    def test_ok_range(self):
        assert Response(204).ok
        assert not Response(404).ok


# ── config ─────────────────────────────────────────────────────────────────

class TestConfig:
    def test_defaults(self, monkeypatch):
        from routekit.tier0_core.config import get_config

        for name in ("ROUTEKIT_SERVER_PORT", "ROUTEKIT_CLIENT_TIMEOUT", "ROUTEKIT_SERVER_BACKEND"):
            monkeypatch.delenv(name, raising=False)
        config = get_config()
        assert config.server_port == 8085
        assert config.client_timeout == 60.0
        assert config.server_backend == "wsgiref"
        assert config.environment == "test"

    def test_env_override(self, monkeypatch):
        from routekit.tier0_core.config import get_config

        monkeypatch.setenv("ROUTEKIT_SERVER_PORT", "9090")
        monkeypatch.setenv("ROUTEKIT_CLIENT_TIMEOUT", "5")
        config = get_config()
        assert config.server_port == 9090
        assert config.client_timeout == 5.0

    def test_invalid_port_rejected(self, monkeypatch):
        from pydantic import ValidationError as PydanticValidationError

        from routekit.tier0_core.config import get_config

        monkeypatch.setenv("ROUTEKIT_SERVER_PORT", "70000")
        with pytest.raises(PydanticValidationError):
            get_config()

    def test_config_is_cached(self):
        from routekit.tier0_core.config import get_config

        assert get_config() is get_config()


# ── logging ────────────────────────────────────────────────────────────────

class TestLogging:
    def test_redacts_sensitive_keys(self):
        from routekit.tier0_core.logging import _REDACTED, _redact_processor

        event = _redact_processor(None, "info", {"event": "x", "Authorization": "Bearer t", "path": "/a"})
        assert event["Authorization"] == _REDACTED
        assert event["path"] == "/a"

    def test_get_logger_returns_bound_logger(self):
        from routekit.tier0_core.logging import get_logger

        log = get_logger("routekit.test")
        log.info("test.event", value=1)
# ── logging ────────────────────────────────────────────────────────────────

def _configure_from_env(monkeypatch, **env: str) -> io.StringIO:
    from routekit.tier0_core.config import _reset_config
    from routekit.tier0_core.logging import configure_logging

    for name, value in env.items():
        monkeypatch.setenv(name, value)
    _reset_config()
    stream = io.StringIO()
    configure_logging(stream)
    return stream


def _restore_logging(monkeypatch) -> None:
    from routekit.tier0_core.config import _reset_config
    from routekit.tier0_core.logging import configure_logging

    monkeypatch.undo()
    _reset_config()
    configure_logging()


class TestLogging:
    def test_redacts_sensitive_keys(self):
        from routekit.tier0_core.logging import _REDACTED, _redact_processor

        event = _redact_processor(None, "info", {
            "event": "x",
            "Authorization": "Bearer t",
            "headers": {"Cookie": "sid=1", "accept": "*/*"},
            "path": "/a",
        })
        assert event["Authorization"] == _REDACTED
        assert event["headers"] == {"Cookie": _REDACTED, "accept": "*/*"}
        assert event["path"] == "/a"

    def test_format_and_service_name_come_from_config(self, monkeypatch):
        from routekit.tier0_core.logging import get_logger

        stream = _configure_from_env(
            monkeypatch,
            ROUTEKIT_LOG_FORMAT="json",
            ROUTEKIT_LOG_LEVEL="INFO",
            ROUTEKIT_APP_NAME="orders",
        )
        try:
            get_logger("routekit.test").info("format.checked", token="abc")
        finally:
            _restore_logging(monkeypatch)

        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["event"] == "format.checked"
        assert record["service"] == "orders"
        assert record["level"] == "info"
        assert record["token"] == "[REDACTED]"

    def test_level_comes_from_config(self, monkeypatch):
        from routekit.tier0_core.logging import get_logger

        stream = _configure_from_env(monkeypatch, ROUTEKIT_LOG_LEVEL="error")
        try:
            log = get_logger("routekit.test")
            log.warning("level.dropped")
            log.error("level.kept")
        finally:
            _restore_logging(monkeypatch)

        assert "level.dropped" not in stream.getvalue()
        assert "level.kept" in stream.getvalue()

    def test_invalid_format_rejected(self, monkeypatch):
        from pydantic import ValidationError as PydanticValidationError

        from routekit.tier0_core.config import get_config

        monkeypatch.setenv("ROUTEKIT_LOG_FORMAT", "xml")
        with pytest.raises(PydanticValidationError):
            get_config()
