"""Derived views over the four collections: pure functions.

Every view is a function of (books, authors, stores, inventory) plus the
store filter and search term. No I/O, no state: LibraryData decides when
to recompute.
"""

from typing import Any, Iterable, Optional, Sequence

from verticals.bookstore.models.schemas import (
    Author,
    Book,
    BookWithStores,
    InventoryItem,
    Store,
    StoreBook,
    StoreListing,
    coerce_id,
)

UNKNOWN_AUTHOR = "Unknown Author"
UNKNOWN_STORE = "Unknown Store"


# ---------------------------------------------------------------------------
# Lookup maps
# ---------------------------------------------------------------------------

def build_author_map(authors: Iterable[Author]) -> dict[Any, Author]:
    """id -> Author. Last write wins on duplicate ids."""
    return {author.id: author for author in authors}


def build_store_map(stores: Iterable[Store]) -> dict[Any, Store]:
    """id -> Store. Last write wins on duplicate ids."""
    return {store.id: store for store in stores}


def parse_store_id(store_id: Any) -> Any:
    """Normalize a store filter. ``None`` and blank strings mean all stores."""
    if store_id is None or (isinstance(store_id, str) and not store_id.strip()):
        return None
    return coerce_id(store_id.strip() if isinstance(store_id, str) else store_id)


def find_current_store(stores: Iterable[Store], store_id: Any) -> Optional[Store]:
    parsed = parse_store_id(store_id)
    if parsed is None:
        return None
    return next((store for store in stores if store.id == parsed), None)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def _stringify(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def matches_search(record: StoreBook, search_term: str) -> bool:
    """Case-insensitive substring match against every field value."""
    needle = search_term.lower()
    return any(
        needle in _stringify(value).lower()
        for value in record.model_dump().values()
    )


# ---------------------------------------------------------------------------
# Store inventory view
# ---------------------------------------------------------------------------

def _annotate(
    book: Book,
    item: Optional[InventoryItem],
    author_map: dict[Any, Author],
    unknown_author: str,
) -> StoreBook:
    author = author_map.get(book.author_id)
    return StoreBook.model_validate({
        **book.model_dump(),
        "price": item.price if item else None,
        "inventory_id": item.id if item else None,
        "author_name": author.name if author else unknown_author,
    })


def derive_store_books(
    books: Sequence[Book],
    inventory: Sequence[InventoryItem],
    author_map: dict[Any, Author],
    store_id: Any = None,
    search_term: str = "",
    unknown_author: str = UNKNOWN_AUTHOR,
) -> list[StoreBook]:
    """Books carried by one store, joined with price and author name.

    Each book is annotated from the first inventory row of the store that
    references it. Without a store id every book is returned, annotated
    with its author only.
    """
    parsed = parse_store_id(store_id)

    if parsed is None:
        rows = [_annotate(book, None, author_map, unknown_author) for book in books]
    else:
        first_item: dict[Any, InventoryItem] = {}
        for item in inventory:
            if item.store_id == parsed:
                first_item.setdefault(item.book_id, item)
        rows = [
            _annotate(book, first_item[book.id], author_map, unknown_author)
            for book in books
            if book.id in first_item
        ]

    if search_term.strip():
        rows = [row for row in rows if matches_search(row, search_term)]

    return rows


# ---------------------------------------------------------------------------
# Browse view
# ---------------------------------------------------------------------------

def derive_books_with_stores(
    books: Sequence[Book],
    inventory: Sequence[InventoryItem],
    author_map: dict[Any, Author],
    store_map: dict[Any, Store],
    unknown_author: str = UNKNOWN_AUTHOR,
    unknown_store: str = UNKNOWN_STORE,
) -> list[BookWithStores]:
    """One entry per book with every (store name, price) pair, in inventory order."""
    by_book: dict[Any, list[InventoryItem]] = {}
    for item in inventory:
        by_book.setdefault(item.book_id, []).append(item)

    result = []
    for book in books:
        author = author_map.get(book.author_id)
        listings = []
        for item in by_book.get(book.id, []):
            store = store_map.get(item.store_id)
            listings.append(StoreListing(
                name=store.name if store else unknown_store,
                price=item.price,
            ))
        result.append(BookWithStores(
            book_id=book.id,
            title=book.name,
            author=author.name if author else unknown_author,
            stores=listings,
        ))
    return result


# ---------------------------------------------------------------------------
# Add-book picker
# ---------------------------------------------------------------------------

def available_books(
    books: Sequence[Book],
    inventory: Sequence[InventoryItem],
    store_id: Any,
    search: str = "",
    limit: Optional[int] = 7,
) -> list[Book]:
    """Books the store does not carry yet, optionally filtered by name."""
    parsed = parse_store_id(store_id)
    carried = {item.book_id for item in inventory if item.store_id == parsed}
    candidates = [book for book in books if book.id not in carried]

    if search.strip():
        needle = search.lower()
        candidates = [book for book in candidates if needle in book.name.lower()]

    return candidates if limit is None else candidates[:limit]
