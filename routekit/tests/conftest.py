"""
routekit test configuration.

Tests never touch external services: outbound calls go through
httpx.MockTransport and servers bind ephemeral ports on localhost.
"""
from __future__ import annotations

import os

import pytest
from pydantic import BaseModel

# ── Force test settings ────────────────────────────────────────────────────
# These must be set before any routekit modules are imported.

os.environ.setdefault("ROUTEKIT_ENV", "test")
os.environ.setdefault("ROUTEKIT_LOG_FORMAT", "console")
os.environ.setdefault("ROUTEKIT_LOG_LEVEL", "WARNING")


# ── Wire types ─────────────────────────────────────────────────────────────

class TestData(BaseModel):
    __test__ = False

    id: str
    name: str


class ResponseData(BaseModel):
    id: int
    name: str
    mappingId: str


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config():
    """Each test sees config built from the current environment."""
    from routekit.tier0_core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def calls() -> list:
    """Records business-function invocations."""
    return []


@pytest.fixture
def scenario_routes(calls):
    """The GET/POST routes used by the end-to-end scenarios."""
    from routekit.tier0_core.http import Request
    from routekit.tier1_runtime.routing import get_api_route, post_api_route
    from routekit.tier1_runtime.serialize import JsonCodec

    def get_api_message(request: Request) -> ResponseData:
        calls.append(("GET", request.path))
        id_ = request.query_param("id")
        name = request.query_param("name")
        return ResponseData(id=int(id_), name=name, mappingId=f"{id_}-{name}")

    def post_api_message(data: TestData) -> ResponseData:
        calls.append(("POST", data))
        return ResponseData(id=int(data.id), name=data.name, mappingId=f"{data.id}-{data.name}")

    output = JsonCodec(ResponseData)
    return [
        get_api_route("/getApiMsg", get_api_message, output=output),
        post_api_route("/postApiMsg", JsonCodec(TestData), post_api_message, output=output),
    ]
