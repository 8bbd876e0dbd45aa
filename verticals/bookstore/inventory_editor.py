"""Inventory mutation flow: optimistic price edits, removals and additions.

Every mutation patches the library's inventory collection before it
returns, then settles its request in a background task:

- success reconciles the row with what the server sent back;
- failure raises a notice and rolls the patch back (Save/Delete only when
  ``InventoryConfig.rollback_on_failure`` is set; Add always);
- a response for a row that has been mutated again since is stale and is
  dropped without touching state.
- a row added optimistically cannot be saved or deleted until its POST
  settles.
"""

import asyncio
import math
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine, Optional, Union

from loguru import logger
from pydantic import ValidationError

from core.errors import (
    AuthenticationRequired,
    InvalidTransition,
    NetworkFailure,
    ValidationFailure,
)
from core.integrations.resource_client import ResourceClient
from core.resilience.generations import GenerationCounter
from patterns.domain_config import BookstoreConfig
from patterns.workflow_states import RowEditSession, RowEditState
from verticals.bookstore.library_data import LibraryData
from verticals.bookstore.models.schemas import (
    InventoryCreate,
    InventoryItem,
    InventoryUpdate,
    StoreBook,
)
from verticals.bookstore.session import Session
from verticals.bookstore.views import parse_store_id

INVENTORY = "inventory"
INVALID_PRICE = "Please enter a valid price"
MISSING_SELECTION = "Please select a book and enter a price"
PENDING_ADD = "This book is still being added, please wait"


class MutationKind(str, Enum):
    SAVE = "save"
    DELETE = "delete"
    ADD = "add"


FAILURE_NOTICES: dict[MutationKind, str] = {
    MutationKind.SAVE: "Failed to update price",
    MutationKind.DELETE: "Failed to delete item",
    MutationKind.ADD: "Failed to add book to inventory",
}


@dataclass
class MutationResult:
    """How a scheduled mutation settled."""

    kind: MutationKind
    inventory_id: Any
    ok: bool
    item: Optional[InventoryItem] = None
    error: Optional[str] = None
    stale: bool = False
    rolled_back: bool = False


def parse_price(value: Any) -> float:
    """Parse a user-entered price. Raises ValidationFailure when not a finite number."""
    if isinstance(value, bool) or value is None:
        raise ValidationFailure(INVALID_PRICE)
    try:
        price = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationFailure(INVALID_PRICE) from None
    if not math.isfinite(price):
        raise ValidationFailure(INVALID_PRICE)
    return price


def _format_price(price: Optional[float]) -> str:
    if price is None:
        return ""
    return str(int(price)) if float(price).is_integer() else str(price)


def _with_price(inventory_id: Any, price: float) -> Callable:
    def patch(items):
        return [
            item.model_copy(update={"price": price}) if item.id == inventory_id else item
            for item in items
        ]
    return patch


def _replacing(item_id: Any, replacement: InventoryItem) -> Callable:
    def patch(items):
        return [replacement if item.id == item_id else item for item in items]
    return patch


def _without(item_id: Any) -> Callable:
    def patch(items):
        return [item for item in items if item.id != item_id]
    return patch


def _reinserting(item: InventoryItem, index: int) -> Callable:
    def patch(items):
        items = list(items)
        if any(existing.id == item.id for existing in items):
            return items
        items.insert(min(index, len(items)), item)
        return items
    return patch


class InventoryEditor:
    """Edits the inventory of one store on top of a LibraryData snapshot.

    Usage::

        editor = InventoryEditor(library, confirm=ask_user, notify=show_alert)
        editor.edit(row)
        editor.set_working_price("12.50")
        task = editor.save()      # price already patched locally
        result = await task       # MutationResult once the PATCH settles
    """

    def __init__(
        self,
        library: LibraryData,
        client: Optional[ResourceClient] = None,
        store_id: Any = None,
        config: Optional[BookstoreConfig] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        notify: Optional[Callable[[str], None]] = None,
        session: Optional[Session] = None,
    ):
        self.library = library
        self.client = client or library.client
        self.store_id = store_id if store_id is not None else library.store_id
        self.config = config or library.config
        self.session = session
        self._confirm = confirm or (lambda message: False)
        self._notify = notify or (lambda message: logger.warning("Notice: {}", message))

        self.edit_session: Optional[RowEditSession] = None
        self.editing_row: Optional[StoreBook] = None
        self.working_price: str = ""

        self._generations = GenerationCounter()
        self._pending: set[asyncio.Task] = set()
        self._adding: set[str] = set()

    # -- Edit state --

    @property
    def editing_row_id(self) -> Any:
        return self.editing_row.id if self.editing_row is not None else None

    def is_editing(self, row: StoreBook) -> bool:
        return self.editing_row is not None and self.editing_row.id == row.id

    def edit(self, row: StoreBook) -> RowEditSession:
        """Start editing ``row`` with its current price as the working value."""
        if self.editing_row is not None:
            self.cancel()

        session = RowEditSession(row_id=row.id)
        session.transition(RowEditState.EDITING, price=row.price)
        self.edit_session = session
        self.editing_row = row
        self.working_price = _format_price(row.price)
        return session

    def toggle_edit(self, row: StoreBook) -> None:
        if self.is_editing(row):
            self.cancel()
        else:
            self.edit(row)

    def set_working_price(self, value: str) -> None:
        self._require_editing()
        self.working_price = value

    def cancel(self) -> None:
        """Discard the working value. No request is sent."""
        if self.edit_session is None or not self.edit_session.is_editing:
            return
        self.edit_session.transition(RowEditState.CANCELLED)
        self._back_to_viewing()

    def _back_to_viewing(self) -> None:
        self.edit_session.transition(RowEditState.VIEWING)
        self.editing_row = None
        self.working_price = ""

    def _require_editing(self) -> None:
        if self.edit_session is None or not self.edit_session.is_editing:
            raise InvalidTransition("No row is being edited")

    def _require_session(self) -> None:
        if self.session is not None and not self.session.is_authenticated:
            raise AuthenticationRequired("Sign in to change the inventory")

    def _require_settled(self, inventory_id: Any) -> None:
        if inventory_id in self._adding:
            raise ValidationFailure(PENDING_ADD)

    # -- Save --

    def save(self) -> Optional[asyncio.Task]:
        """Apply the working price and schedule the PATCH.

        Raises ValidationFailure (staying in editing) when the working value
        is not a non-negative number, or when the row is still being added.
        Returns None for a row without an inventory id.
        """
        self._require_editing()
        self._require_session()
        price = parse_price(self.working_price)
        if price < 0:
            raise ValidationFailure(INVALID_PRICE)

        inventory_id = self.editing_row.inventory_id
        if inventory_id is None:
            return None
        self._require_settled(inventory_id)

        loop = asyncio.get_running_loop()
        previous = self.library.find_row(inventory_id)
        generation = self._generations.next(inventory_id)

        self.edit_session.transition(RowEditState.SAVING, price=price)
        self.library.set_inventory(_with_price(inventory_id, price))
        task = self._schedule(loop, self._send_save(
            inventory_id,
            price,
            previous.price if previous is not None else None,
            generation,
        ))
        self._back_to_viewing()
        return task

    async def _send_save(
        self,
        inventory_id: Any,
        price: float,
        previous_price: Optional[float],
        generation: int,
    ) -> MutationResult:
        try:
            data = await self.client.update(
                INVENTORY, inventory_id, InventoryUpdate(price=price).model_dump()
            )
        except NetworkFailure as exc:
            if not self._generations.is_current(inventory_id, generation):
                return self._stale(MutationKind.SAVE, inventory_id, str(exc))
            rolled_back = False
            if self.config.inventory.rollback_on_failure and previous_price is not None:
                self.library.set_inventory(_with_price(inventory_id, previous_price))
                rolled_back = True
            self._fail(MutationKind.SAVE, exc)
            return MutationResult(
                MutationKind.SAVE, inventory_id, ok=False,
                error=str(exc), rolled_back=rolled_back,
            )

        if not self._generations.is_current(inventory_id, generation):
            return self._stale(MutationKind.SAVE, inventory_id)

        item = self._server_item(data)
        if item is not None:
            self.library.set_inventory(_replacing(inventory_id, item))
        return MutationResult(MutationKind.SAVE, inventory_id, ok=True, item=item)

    # -- Delete --

    def delete(self, row: StoreBook) -> Optional[asyncio.Task]:
        """Remove ``row`` after confirmation and schedule the DELETE.

        Returns None when the user declines or the row has no inventory id.
        Raises ValidationFailure while the row is still being added.
        """
        self._require_session()
        self._require_settled(row.inventory_id)
        message = f'Are you sure you want to remove "{row.name}" from this store?'
        if not self._confirm(message):
            return None

        inventory_id = row.inventory_id
        if inventory_id is None:
            return None

        loop = asyncio.get_running_loop()
        if self.is_editing(row):
            self.cancel()

        index, removed = next(
            (
                (i, item) for i, item in enumerate(self.library.inventory)
                if item.id == inventory_id
            ),
            (len(self.library.inventory), None),
        )
        generation = self._generations.next(inventory_id)
        self.library.set_inventory(_without(inventory_id))
        return self._schedule(
            loop, self._send_delete(inventory_id, removed, index, generation)
        )

    async def _send_delete(
        self,
        inventory_id: Any,
        removed: Optional[InventoryItem],
        index: int,
        generation: int,
    ) -> MutationResult:
        try:
            await self.client.delete(INVENTORY, inventory_id)
        except NetworkFailure as exc:
            if not self._generations.is_current(inventory_id, generation):
                return self._stale(MutationKind.DELETE, inventory_id, str(exc))
            rolled_back = False
            if self.config.inventory.rollback_on_failure and removed is not None:
                self.library.set_inventory(_reinserting(removed, index))
                rolled_back = True
            self._fail(MutationKind.DELETE, exc)
            return MutationResult(
                MutationKind.DELETE, inventory_id, ok=False,
                error=str(exc), rolled_back=rolled_back,
            )

        self._generations.forget(inventory_id)
        return MutationResult(MutationKind.DELETE, inventory_id, ok=True)

    # -- Add --

    def add(self, book_id: Any, price: Any) -> asyncio.Task:
        """Append an optimistic row for ``book_id`` and schedule the POST."""
        self._require_session()
        if book_id in (None, "") or price in (None, ""):
            raise ValidationFailure(MISSING_SELECTION)
        value = parse_price(price)
        if value <= 0:
            raise ValidationFailure(INVALID_PRICE)
        store_id = parse_store_id(self.store_id)
        if store_id is None:
            raise ValidationFailure("Please select a store")

        try:
            payload = InventoryCreate(book_id=book_id, store_id=store_id, price=value)
        except ValidationError as exc:
            raise ValidationFailure(MISSING_SELECTION) from exc

        loop = asyncio.get_running_loop()
        temp_id = f"tmp-{uuid.uuid4().hex[:12]}"
        optimistic = InventoryItem(id=temp_id, **payload.model_dump())
        self._adding.add(temp_id)
        self.library.set_inventory(lambda items: [*items, optimistic])
        return self._schedule(loop, self._send_add(temp_id, payload))

    async def _send_add(
        self,
        temp_id: str,
        payload: InventoryCreate,
    ) -> MutationResult:
        try:
            data = await self.client.create(INVENTORY, payload.model_dump())
        except NetworkFailure as exc:
            self._adding.discard(temp_id)
            self.library.set_inventory(_without(temp_id))
            self._fail(MutationKind.ADD, exc)
            return MutationResult(
                MutationKind.ADD, temp_id, ok=False, error=str(exc), rolled_back=True,
            )

        self._adding.discard(temp_id)
        item = self._server_item(data)
        if item is None:
            # a 2xx without a usable row leaves nothing to reconcile with
            self.library.set_inventory(_without(temp_id))
            error = f"No inventory row in response: {data!r}"
            self._fail(MutationKind.ADD, error)
            return MutationResult(
                MutationKind.ADD, temp_id, ok=False, error=error, rolled_back=True,
            )
        self.library.set_inventory(_replacing(temp_id, item))
        return MutationResult(MutationKind.ADD, item.id, ok=True, item=item)

    # -- Plumbing --

    def _schedule(
        self,
        loop: asyncio.AbstractEventLoop,
        coro: Coroutine[Any, Any, MutationResult],
    ) -> asyncio.Task:
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> list[MutationResult]:
        """Wait for every mutation still in flight."""
        return list(await asyncio.gather(*self._pending))

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @staticmethod
    def _server_item(data: Any) -> Optional[InventoryItem]:
        if not isinstance(data, dict):
            return None
        try:
            return InventoryItem.model_validate(data)
        except ValidationError as exc:
            logger.warning("Ignoring malformed inventory row from server: {}", exc)
            return None

    def _stale(self, kind: MutationKind, inventory_id: Any, error: Optional[str] = None) -> MutationResult:
        logger.debug("Discarding stale {} response for inventory row {}", kind.value, inventory_id)
        return MutationResult(kind, inventory_id, ok=error is None, error=error, stale=True)

    def _fail(self, kind: MutationKind, reason: Union[Exception, str]) -> None:
        logger.error("{} failed: {}", FAILURE_NOTICES[kind], reason)
        self._notify(FAILURE_NOTICES[kind])
