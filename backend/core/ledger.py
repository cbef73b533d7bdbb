"""
Stock ledger (two locations per article).

Records:
- Item (article stored at location1 and optionally location2, one stock count each)
- LogEntry (append-only record of a single stock change)

Statuses are never stored on the records; they are computed from stock.
"""

import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


class Status(str, Enum):
    IN_STOCK = "in-stock"
    OUT_OF_STOCK = "out-of-stock"


class Slot(Enum):
    SLOT1 = 1
    SLOT2 = 2
    NOT_FOUND = 0


class Operation(str, Enum):
    ADD = "add"
    REMOVE = "remove"

    @property
    def delta(self) -> int:
        return 1 if self is Operation.ADD else -1

    @classmethod
    def from_delta(cls, delta: int) -> "Operation":
        return cls.ADD if delta > 0 else cls.REMOVE


def derive_status(stock: int) -> Status:
    return Status.IN_STOCK if stock > 0 else Status.OUT_OF_STOCK


def next_stock(previous: int, delta: int) -> int:
    # Stock never goes below zero; removing from an empty slot stays at 0.
    return max(0, previous + delta)


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    if not isinstance(v, str):
        v = str(v)
    return v if v.strip() else None


class Item(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    article: str
    location1: str
    location2: Optional[str] = None
    stock1: int = Field(default=0, ge=0)
    stock2: int = Field(default=0, ge=0)
    barcode: Optional[str] = None

    @field_validator("article", "location1")
    @classmethod
    def _required(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("field is required")
        return v

    @model_validator(mode="before")
    @classmethod
    def _no_stock_without_location2(cls, data):
        # stock2 is only kept for an assigned second location
        if isinstance(data, dict) and _blank_to_none(data.get("location2")) is None:
            data = {**data, "stock2": 0}
        return data

    @field_validator("location2", "barcode", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return _blank_to_none(v)

    @computed_field
    @property
    def status1(self) -> Status:
        return derive_status(self.stock1)

    @computed_field
    @property
    def status2(self) -> Optional[Status]:
        if self.location2 is None:
            return None
        return derive_status(self.stock2)

    @property
    def has_location2(self) -> bool:
        return self.location2 is not None

    def location_at(self, slot: Slot) -> Optional[str]:
        if slot is Slot.SLOT1:
            return self.location1
        if slot is Slot.SLOT2:
            return self.location2
        return None

    def stock_at(self, slot: Slot) -> int:
        if slot is Slot.SLOT1:
            return self.stock1
        if slot is Slot.SLOT2:
            return self.stock2
        raise ValueError("no stock for an unresolved slot")

    def with_stock(self, slot: Slot, stock: int) -> "Item":
        """Copy of this item with one slot's stock replaced."""
        stock = max(0, int(stock))
        if slot is Slot.SLOT1:
            return self.model_copy(update={"stock1": stock})
        if slot is Slot.SLOT2:
            return self.model_copy(update={"stock2": stock})
        raise ValueError("cannot set stock on an unresolved slot")


def resolve_location_slot(item: Item, location: str) -> Slot:
    """
    Match ``location`` against the item's two labels.

    Exact string equality only: a label differing in case or surrounding
    whitespace does not match.
    """
    if location == item.location1:
        return Slot.SLOT1
    if item.location2 is not None and location == item.location2:
        return Slot.SLOT2
    return Slot.NOT_FOUND


def is_empty(item: Item) -> bool:
    if item.stock1 == 0 and item.location1:
        return True
    return item.has_location2 and item.stock2 == 0


def new_log_id() -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    article: str
    location: str
    operation: Operation
    previous_stock: int = Field(ge=0)
    new_stock: int = Field(ge=0)
    user: Optional[str] = None

    @classmethod
    def record(
        cls,
        *,
        item: Item,
        location: str,
        delta: int,
        previous_stock: int,
        new_stock: int,
        user: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "LogEntry":
        # article/location are copied so history survives later item edits
        return cls(
            id=new_log_id(),
            timestamp=clock(),
            article=item.article,
            location=location,
            operation=Operation.from_delta(delta),
            previous_stock=previous_stock,
            new_stock=new_stock,
            user=user,
        )
