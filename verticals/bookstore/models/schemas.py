"""Pydantic schemas for collection records and derived views."""

from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field


def coerce_id(value: Any) -> Any:
    # JSON servers hand ids back as "7" as often as 7
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return value


Id = Annotated[Union[int, str], BeforeValidator(coerce_id)]

# null text fields read as empty
Text = Annotated[str, BeforeValidator(lambda v: "" if v is None else v)]


class Record(BaseModel):
    """Base for server records. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow")


# ---------------------------------------------------------------------------
# Collection records
# ---------------------------------------------------------------------------

class Book(Record):
    id: Id
    name: Text = ""
    author_id: Optional[Id] = None
    page_count: Optional[int] = None


class Author(Record):
    id: Id
    first_name: Text = ""
    last_name: Text = ""

    @computed_field
    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Store(Record):
    id: Id
    name: Text = ""


class InventoryItem(Record):
    id: Id
    book_id: Id
    store_id: Id
    price: float = Field(0.0, ge=0)


class User(Record):
    id: Optional[Id] = None
    username: str
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class InventoryCreate(BaseModel):
    book_id: Id
    store_id: Id
    price: float = Field(..., gt=0)


class InventoryUpdate(BaseModel):
    price: float = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------

class StoreBook(Book):
    """A book as carried by one store."""

    price: Optional[float] = None
    inventory_id: Optional[Id] = None
    author_name: str = ""


class StoreListing(BaseModel):
    name: str
    price: float


class BookWithStores(BaseModel):
    """A book and every store that carries it."""

    book_id: Id
    title: str
    author: str
    stores: list[StoreListing] = Field(default_factory=list)
