"""Library data aggregator: loads the four collections and serves derived views.

One LibraryData instance backs one view (a store's inventory page, the
browse page). ``load()`` fetches stores, books, authors and inventory
concurrently and commits them together; views are recomputed on read
whenever one of the collections has been replaced.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from core.errors import LoadFailure
from core.integrations.resource_client import ResourceClient
from core.resilience.generations import GenerationCounter
from patterns.domain_config import BookstoreConfig
from verticals.bookstore.models.schemas import (
    Author,
    Book,
    BookWithStores,
    InventoryItem,
    Store,
    StoreBook,
)
from verticals.bookstore.views import (
    available_books,
    build_author_map,
    build_store_map,
    derive_books_with_stores,
    derive_store_books,
    find_current_store,
    parse_store_id,
)

InventoryPatch = Union[
    Iterable[Union[InventoryItem, dict]],
    Callable[[tuple[InventoryItem, ...]], Iterable[Union[InventoryItem, dict]]],
]

_LOAD_KEY = "load"


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


def _as_inventory_item(item: Union[InventoryItem, dict]) -> InventoryItem:
    return item if isinstance(item, InventoryItem) else InventoryItem.model_validate(item)


class LibraryData:
    """Collections, lookup maps and derived views for one store filter.

    Usage::

        library = LibraryData(client, config)
        await library.load(store_id=2, search_term="tolkien")
        for row in library.store_books:
            print(row.name, row.price)
    """

    def __init__(
        self,
        client: ResourceClient,
        config: Optional[BookstoreConfig] = None,
    ):
        self.client = client
        self.config = config or BookstoreConfig.default()

        self.store_id: Any = None
        self.search_term: str = ""

        self.books: tuple[Book, ...] = ()
        self.authors: tuple[Author, ...] = ()
        self.stores: tuple[Store, ...] = ()
        self.inventory: tuple[InventoryItem, ...] = ()

        self.state = LoadState.IDLE
        self.error: Optional[LoadFailure] = None

        self._generations = GenerationCounter()
        self._cache: dict[str, tuple[tuple, tuple, Any]] = {}

    # -- Loading --

    @property
    def is_loading(self) -> bool:
        return self.state == LoadState.LOADING

    async def load(self, store_id: Any = None, search_term: str = "") -> "LibraryData":
        """Fetch all four collections and commit them together.

        Raises LoadFailure if any fetch fails; the previous snapshot stays
        in place. A load superseded by a newer one is discarded silently.
        """
        self.store_id = store_id
        self.search_term = search_term
        generation = self._generations.next(_LOAD_KEY)
        self.state = LoadState.LOADING

        parsed = parse_store_id(store_id)
        params = {"store_id": parsed} if parsed is not None else {}
        logger.debug("Fetching inventory URL: {} {}", self.client.url_for("inventory"), params)

        try:
            stores, books, authors, inventory = await self._fetch_all(params)
        except (ExceptionGroup, ValidationError) as exc:
            failure = self._failure_from(exc)
            if not self._generations.is_current(_LOAD_KEY, generation):
                logger.debug("Discarding failure of superseded load #{}", generation)
                return self
            self.state = LoadState.FAILED
            self.error = failure
            logger.error("Error fetching data: {}", failure)
            raise failure from None

        if not self._generations.is_current(_LOAD_KEY, generation):
            logger.debug("Discarding results of superseded load #{}", generation)
            return self

        self.stores, self.books, self.authors, self.inventory = (
            stores, books, authors, inventory
        )
        self.state = LoadState.LOADED
        self.error = None

        logger.debug("Fetched inventory data: {} rows", len(inventory))
        if not inventory:
            logger.warning("No inventory found for this store (length is 0).")
        return self

    async def _fetch_all(self, params: dict[str, Any]) -> tuple[tuple, tuple, tuple, tuple]:
        # TaskGroup cancels the remaining fetches as soon as one fails
        async with asyncio.TaskGroup() as tg:
            stores_task = tg.create_task(self.client.list("stores"))
            books_task = tg.create_task(self.client.list("books"))
            authors_task = tg.create_task(self.client.list("authors"))
            inventory_task = tg.create_task(self.client.list("inventory", params))

        return (
            tuple(Store.model_validate(s) for s in stores_task.result()),
            tuple(Book.model_validate(b) for b in books_task.result()),
            tuple(Author.model_validate(a) for a in authors_task.result()),
            tuple(InventoryItem.model_validate(i) for i in inventory_task.result()),
        )

    @staticmethod
    def _failure_from(exc: Exception) -> LoadFailure:
        causes = list(exc.exceptions) if isinstance(exc, ExceptionGroup) else [exc]
        first = causes[0]
        if isinstance(first, ValidationError):
            message = f"Invalid collection data: {first}"
        else:
            message = f"Error fetching data: {first}"
        return LoadFailure(message, causes=causes)

    async def reload(self) -> "LibraryData":
        """Retry the last load with the same store filter and search term."""
        return await self.load(self.store_id, self.search_term)

    def clear(self) -> None:
        """Drop every collection and supersede any load still in flight."""
        self._generations.next(_LOAD_KEY)
        self.books, self.authors, self.stores, self.inventory = (), (), (), ()
        self.state = LoadState.IDLE
        self.error = None
        self._cache.clear()

    # -- Mutators --

    def set_inventory(self, items: InventoryPatch) -> tuple[InventoryItem, ...]:
        """Replace the inventory collection.

        Accepts a new sequence, or a function of the current inventory so
        that late responses patch the latest state rather than a stale copy.
        """
        if callable(items):
            items = items(self.inventory)
        self.inventory = tuple(_as_inventory_item(item) for item in items)
        return self.inventory

    def set_search_term(self, search_term: str) -> None:
        self.search_term = search_term

    # -- Derived views --

    def _memo(self, name: str, sources: tuple, params: tuple, compute: Callable[[], Any]) -> Any:
        cached = self._cache.get(name)
        if cached is not None:
            cached_sources, cached_params, value = cached
            if cached_params == params and all(
                a is b for a, b in zip(cached_sources, sources)
            ):
                return value
        value = compute()
        self._cache[name] = (sources, params, value)
        return value

    @property
    def author_map(self) -> dict[Any, Author]:
        return self._memo(
            "author_map", (self.authors,), (), lambda: build_author_map(self.authors)
        )

    @property
    def store_map(self) -> dict[Any, Store]:
        return self._memo(
            "store_map", (self.stores,), (), lambda: build_store_map(self.stores)
        )

    @property
    def store_books(self) -> list[StoreBook]:
        """Books carried by the selected store, filtered by the search term."""
        author_map = self.author_map
        return self._memo(
            "store_books",
            (self.books, self.inventory, author_map),
            (self.store_id, self.search_term),
            lambda: derive_store_books(
                self.books,
                self.inventory,
                author_map,
                store_id=self.store_id,
                search_term=self.search_term,
                unknown_author=self.config.inventory.unknown_author_label,
            ),
        )

    @property
    def books_with_stores(self) -> list[BookWithStores]:
        """Every book with the stores that carry it, ignoring the store filter."""
        author_map, store_map = self.author_map, self.store_map
        return self._memo(
            "books_with_stores",
            (self.books, self.inventory, author_map, store_map),
            (),
            lambda: derive_books_with_stores(
                self.books,
                self.inventory,
                author_map,
                store_map,
                unknown_author=self.config.inventory.unknown_author_label,
                unknown_store=self.config.inventory.unknown_store_label,
            ),
        )

    @property
    def current_store(self) -> Optional[Store]:
        return find_current_store(self.stores, self.store_id)

    @property
    def is_empty(self) -> bool:
        """Loaded successfully, but the selected store has no rows to show."""
        return self.state == LoadState.LOADED and not self.store_books

    def available_books(self, search: str = "", limit: Optional[int] = None) -> list[Book]:
        """Books the selected store does not carry yet."""
        if limit is None:
            limit = self.config.inventory.available_books_limit
        return available_books(self.books, self.inventory, self.store_id, search, limit)

    def find_row(self, inventory_id: Any) -> Optional[InventoryItem]:
        return next((item for item in self.inventory if item.id == inventory_id), None)
