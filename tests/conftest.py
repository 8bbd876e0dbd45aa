"""Shared fixtures: an in-memory JSON collection server behind httpx.MockTransport."""
import asyncio
import copy
import json

import httpx
import pytest

from core.integrations.resource_client import ResourceClient
from patterns.domain_config import ApiConfig, BookstoreConfig
from verticals.bookstore.library_data import LibraryData
from verticals.bookstore.models.schemas import Author, Book, InventoryItem, Store

API_URL = "http://bookstore.test"

SAMPLE_DATA = {
    "books": [
        {"id": 1, "name": "The Hobbit", "author_id": 1, "page_count": 310},
        {"id": 2, "name": "Dune", "author_id": 2, "page_count": 412},
        {"id": 3, "name": "Emma", "author_id": 3, "page_count": 474},
        {"id": 4, "name": "Orphan Pages", "author_id": 99, "page_count": 120},
    ],
    "authors": [
        {"id": 1, "first_name": "J.R.R.", "last_name": "Tolkien"},
        {"id": 2, "first_name": "Frank", "last_name": "Herbert"},
        {"id": 3, "first_name": "Jane", "last_name": "Austen"},
    ],
    "stores": [
        {"id": 1, "name": "Downtown Books"},
        {"id": 2, "name": "Harbor Reads"},
    ],
    "inventory": [
        {"id": 1, "book_id": 1, "store_id": 1, "price": 15.99},
        {"id": 2, "book_id": 2, "store_id": 1, "price": 12.5},
        {"id": 3, "book_id": 1, "store_id": 2, "price": 16.0},
        {"id": 4, "book_id": 4, "store_id": 2, "price": 5},
        {"id": 5, "book_id": 3, "store_id": 99, "price": 8},
    ],
    "users": [
        {"id": 1, "username": "admin", "password": "admin123", "role": "manager"},
    ],
}


class FakeCollectionServer:
    """Tiny json-server lookalike: list/filter, create, patch, delete."""

    def __init__(self, data: dict):
        self.db = copy.deepcopy(data)
        self.requests: list[httpx.Request] = []
        self.next_id = 1000
        self._failures: dict[tuple[str, str], list] = {}
        self._gate: asyncio.Event | None = None

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def fail_on(self, method: str, resource: str, status: int = 500, times: int | None = None):
        """Answer ``method resource`` with ``status`` (``times`` times, or always)."""
        self._failures[(method, resource)] = [status, times]

    def hold(self) -> asyncio.Event:
        """Park every request until the returned event is set."""
        self._gate = asyncio.Event()
        return self._gate

    def release(self) -> None:
        """Stop parking new requests; already parked ones wait for their event."""
        self._gate = None

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    async def wait_for_requests(self, count: int) -> None:
        async def poll():
            while len(self.requests) < count:
                await asyncio.sleep(0)
        await asyncio.wait_for(poll(), timeout=1.0)

    def _failure_for(self, method: str, resource: str) -> int | None:
        failure = self._failures.get((method, resource))
        if failure is None:
            return None
        status, times = failure
        if times is not None:
            if times <= 0:
                return None
            failure[1] = times - 1
        return status

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        resource = parts[0]
        item_id = parts[1] if len(parts) > 1 else None

        # failures are assigned in arrival order, before any parking
        status = self._failure_for(request.method, resource)
        gate = self._gate
        if gate is not None:
            await gate.wait()

        if status is not None:
            return httpx.Response(status, json={"error": "simulated failure"})

        if resource not in self.db:
            return httpx.Response(404, json={"error": "not found"})
        items = self.db[resource]

        if request.method == "GET":
            result = [
                item for item in items
                if all(str(item.get(k)) == v for k, v in request.url.params.items())
            ]
            return httpx.Response(200, json=result)

        if request.method == "POST":
            body = json.loads(request.content)
            body["id"] = self.next_id
            self.next_id += 1
            items.append(body)
            return httpx.Response(201, json=body)

        match = next((item for item in items if str(item["id"]) == item_id), None)
        if match is None:
            return httpx.Response(404, json={"error": "not found"})

        if request.method == "PATCH":
            match.update(json.loads(request.content))
            return httpx.Response(200, json=match)

        if request.method == "DELETE":
            items.remove(match)
            return httpx.Response(200, json=match)

        return httpx.Response(405)


@pytest.fixture
def server():
    return FakeCollectionServer(SAMPLE_DATA)


@pytest.fixture
def config():
    return BookstoreConfig(api=ApiConfig(production_api_url=API_URL))


@pytest.fixture
def client(server, config):
    return ResourceClient(config.api, transport=server.transport)


@pytest.fixture
def library(client, config):
    return LibraryData(client, config)


@pytest.fixture
def notices():
    return []


@pytest.fixture
def collections():
    """SAMPLE_DATA parsed into (books, authors, stores, inventory) models."""
    return (
        [Book.model_validate(b) for b in SAMPLE_DATA["books"]],
        [Author.model_validate(a) for a in SAMPLE_DATA["authors"]],
        [Store.model_validate(s) for s in SAMPLE_DATA["stores"]],
        [InventoryItem.model_validate(i) for i in SAMPLE_DATA["inventory"]],
    )
