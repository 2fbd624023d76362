from __future__ import annotations

import httpx
import pytest

from conftest import FakeGraph
from insta_relay.errors import InvalidImageError, NotLinkedError, UpstreamError, classify_upstream_error
from insta_relay.graph_client import GraphClient
from insta_relay.workflows import parse_page


def _client(handler) -> GraphClient:
    return GraphClient(httpx.Client(transport=httpx.MockTransport(handler)), "app-123", "secret-456")


def test_transport_failure_becomes_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        _client(handler).fetch_profile("ig-1", "token")
    assert "connection refused" in excinfo.value.details
    assert excinfo.value.code is None


def test_error_without_graph_body_uses_status() -> None:
    graph = FakeGraph()
    graph.on_call("GET", "ig-1", lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(UpstreamError) as excinfo:
        _client(graph).fetch_profile("ig-1", "token")
    assert excinfo.value.details == "Request failed with status code 502"


def test_exchange_without_access_token_is_upstream_error() -> None:
    graph = FakeGraph()
    graph.on("GET", "oauth/access_token", {"token_type": "bearer"})

    with pytest.raises(UpstreamError):
        _client(graph).exchange_token("short")


def test_empty_business_account_is_not_linked() -> None:
    graph = FakeGraph()
    graph.on("GET", "page-1", {"instagram_business_account": {}})

    with pytest.raises(NotLinkedError):
        _client(graph).resolve_business_account("page-1", "token")


def test_media_page_reports_next_cursor() -> None:
    graph = FakeGraph()
    graph.on("GET", "ig-1/media", {"data": [{"id": "m1"}], "paging": {"cursors": {"after": "c2"}}})

    page = _client(graph).fetch_media_page("ig-1", "token", 18, after="c1")

    assert page == {"items": [{"id": "m1"}], "next_cursor": "c2"}
    assert graph.calls[0][2]["after"] == "c1"


def test_count_media_measures_full_listing() -> None:
    graph = FakeGraph()
    graph.on("GET", "ig-1/media", {"data": [{"id": str(index)} for index in range(25)]})

    assert _client(graph).count_media("ig-1", "token") == 25


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 1), ("", 1), ("abc", 1), ("0", 1), ("-3", 1), ("3", 3), (" 4", 4), ("2abc", 2), (7, 7)],
)
def test_parse_page(raw, expected) -> None:
    assert parse_page(raw) == expected


def test_classify_upstream_error() -> None:
    rejected = classify_upstream_error(UpstreamError("Image validation failed: too small", code=36001))
    assert isinstance(rejected, InvalidImageError)

    other = UpstreamError("Unsupported post request", code=100)
    assert classify_upstream_error(other) is other
