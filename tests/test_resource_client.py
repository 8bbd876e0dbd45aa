"""Test the resource client against a mock transport."""
import json

import httpx
import pytest
from core.errors import NetworkFailure
from core.integrations.resource_client import (
    ResourceClient,
    ResourceRequest,
    ResourceResponse,
    as_list,
)
from patterns.domain_config import ApiConfig


def _client(handler, **config) -> ResourceClient:
    api = ApiConfig(production_api_url="http://bookstore.test", **config)
    return ResourceClient(api, transport=httpx.MockTransport(handler))


def test_as_list_normalizes_payloads():
    assert as_list([1, 2]) == [1, 2]
    assert as_list({"id": 1}) == [{"id": 1}]
    assert as_list(None) == []


def test_response_ok():
    assert ResourceResponse(status_code=204, url="x").ok
    assert not ResourceResponse(status_code=404, url="x").ok


def test_url_for_item():
    client = ResourceClient(ApiConfig(production_api_url="http://bookstore.test/"))
    assert client.url_for("inventory") == "http://bookstore.test/inventory"
    assert client.url_for("inventory", 7) == "http://bookstore.test/inventory/7"


@pytest.mark.asyncio
async def test_list_wraps_single_object():
    client = _client(lambda request: httpx.Response(200, json={"id": 1, "name": "Solo"}))
    assert await client.list("stores") == [{"id": 1, "name": "Solo"}]


@pytest.mark.asyncio
async def test_list_sends_query_params():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json=[])

    await _client(handler).list("inventory", {"store_id": 2})
    assert seen[0].path == "/inventory"
    assert seen[0].params["store_id"] == "2"


@pytest.mark.asyncio
async def test_update_patches_item_path():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"id": 7, "price": 12.5})

    data = await _client(handler).update("inventory", 7, {"price": 12.5})
    assert data == {"id": 7, "price": 12.5}
    assert seen == [("PATCH", "/inventory/7", {"price": 12.5})]


@pytest.mark.asyncio
async def test_empty_body_parses_to_none():
    client = _client(lambda request: httpx.Response(204))
    assert await client.delete("inventory", 3) is None


@pytest.mark.asyncio
async def test_http_error_status_raises():
    client = _client(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(NetworkFailure) as excinfo:
        await client.list("books")
    assert excinfo.value.status_code == 503
    assert excinfo.value.url == "http://bookstore.test/books"
    assert excinfo.value.retryable


@pytest.mark.asyncio
async def test_client_error_status_not_retryable():
    client = _client(lambda request: httpx.Response(404, json={}))
    with pytest.raises(NetworkFailure) as excinfo:
        await client.create("inventory", {"book_id": 1})
    assert excinfo.value.status_code == 404
    assert not excinfo.value.retryable


@pytest.mark.asyncio
async def test_transport_error_raises_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkFailure) as excinfo:
        await _client(handler).list("authors")
    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_request_envelope_returns_latency_and_data():
    client = _client(lambda request: httpx.Response(201, json={"id": 9}))
    resp = await client.request(ResourceRequest("POST", "inventory", body={"price": 1}))
    assert resp.ok
    assert resp.status_code == 201
    assert resp.data == {"id": 9}
    assert resp.latency_ms >= 0


@pytest.mark.asyncio
async def test_static_files_mode_resolves_json_path():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json=[])

    api = ApiConfig(static_base_url="http://frontend.test/data")
    client = ResourceClient(api, transport=httpx.MockTransport(handler))
    await client.list("books")
    assert seen == ["http://frontend.test/data/books.json"]
