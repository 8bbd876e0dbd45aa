"""Bookstore vertical: inventory data layer for a small bookstore chain.

- Pydantic schemas for books, authors, stores, inventory and users
- Pure-function derived views (store inventory, books with stores)
- LibraryData aggregator: concurrent four-collection load
- InventoryEditor: optimistic save / delete / add with rollback
- Session: explicit signed-in user with hydrate and sign-out
- Dataclass configuration
"""
