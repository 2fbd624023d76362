from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from insta_relay.config import Settings  # noqa: E402
from insta_relay.main import create_app  # noqa: E402

Responder = Callable[[httpx.Request], httpx.Response]


class FakeGraph:
    """MockTransport handler standing in for graph.facebook.com."""

    def __init__(self, api_version: str = "v18.0") -> None:
        self.prefix = f"/{api_version}/"
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Responder] = {}

    def on(self, method: str, path: str, payload: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status, json=payload)

    def on_call(self, method: str, path: str, responder: Responder) -> None:
        self.routes[(method, path)] = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path[len(self.prefix):])
        responder = self.routes.get(key)
        if responder is None:
            return httpx.Response(404, json={"error": {"message": f"unexpected call {key}", "code": 803}})
        return responder(request)

    @property
    def calls(self) -> list[tuple[str, str, dict[str, str]]]:
        return [
            (request.method, request.url.path[len(self.prefix):], dict(request.url.params))
            for request in self.requests
        ]


def graph_error(message: str, code: int = 100, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"error": {"message": message, "type": "OAuthException", "code": code}})


@pytest.fixture
def graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        facebook_app_id="app-123",
        facebook_app_secret="secret-456",
        database_url=f"sqlite:///{tmp_path / 'relay.db'}",
    )


@pytest.fixture
def client(settings: Settings, graph: FakeGraph):
    app = create_app(settings, http_client=httpx.Client(transport=httpx.MockTransport(graph)))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(client):
    return client.app.state.store


@pytest.fixture
def production_client(tmp_path, graph: FakeGraph):
    settings = Settings(
        facebook_app_id="app-123",
        facebook_app_secret="secret-456",
        database_url=f"sqlite:///{tmp_path / 'prod.db'}",
        app_env="production",
    )
    app = create_app(settings, http_client=httpx.Client(transport=httpx.MockTransport(graph)))
    with TestClient(app) as test_client:
        yield test_client
