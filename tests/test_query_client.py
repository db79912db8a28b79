from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from vizboard.core.errors import NetworkError, RequestTimeoutError, ServerError
from vizboard.infrastructure import QueryServiceClient


def _client(handler, token: str | None = None) -> QueryServiceClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return QueryServiceClient("http://backend.test/api/v1/", token=token, http_client=http_client)


def test_submit_query_posts_the_text():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content.decode("utf-8"))
        captured["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"title": "Sales", "data": []})

    client = _client(handler, token="secret")
    result = asyncio.run(client.submit_query("sales by region"))

    assert result == {"title": "Sales", "data": []}
    assert captured["url"] == "http://backend.test/api/v1/query"
    assert captured["body"] == {"query": "sales by region"}
    assert captured["auth"] == "Bearer secret"


def test_server_detail_is_reported_verbatim():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"detail": "Query too vague"})

    with pytest.raises(ServerError) as excinfo:
        asyncio.run(_client(handler).submit_query("?"))

    assert excinfo.value.detail == "Query too vague"
    assert excinfo.value.status_code == 422
    assert excinfo.value.message == "Server Error: Query too vague"


def test_error_without_detail_reports_the_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(ServerError) as excinfo:
        asyncio.run(_client(handler).submit_query("q"))

    assert excinfo.value.title == "Request Failed"
    assert excinfo.value.detail == "Request failed with status code 503"


def test_timeout_and_connection_failures():
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RequestTimeoutError):
        asyncio.run(_client(timeout).submit_query("q"))
    with pytest.raises(NetworkError) as excinfo:
        asyncio.run(_client(refused).submit_query("q"))
    assert excinfo.value.title == "Connection Error"


def test_non_object_response_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[1, 2, 3])

    with pytest.raises(ServerError, match="Malformed dashboard specification"):
        asyncio.run(_client(handler).submit_query("q"))


def test_base_url_must_be_absolute():
    with pytest.raises(ValueError):
        QueryServiceClient("backend/api")
