from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from core.ledger import Item, LogEntry, Operation
from core.mutations import Mutation
from core.notifications import Notice


StockOperation = Literal["add", "remove"]
StatusOut = Literal["in-stock", "out-of-stock"]

MAX_STOCK_DELTA = 1000


class StockChangeRequest(BaseModel):
    location: str
    operation: Optional[StockOperation] = None
    delta: Optional[int] = Field(default=None, ge=-MAX_STOCK_DELTA, le=MAX_STOCK_DELTA)

    @field_validator("location")
    @classmethod
    def _location_required(cls, v: str) -> str:
        # Not stripped: locations are matched exactly
        if not (v or "").strip():
            raise ValueError("location is required")
        return v

    @model_validator(mode="after")
    def _one_of_operation_or_delta(self):
        if (self.operation is None) == (self.delta is None):
            raise ValueError("provide exactly one of 'operation' or 'delta'")
        return self

    def resolved_delta(self) -> int:
        if self.delta is not None:
            return self.delta
        return Operation(self.operation).delta


class ImportRequest(BaseModel):
    data: str

    @field_validator("data")
    @classmethod
    def _data_required(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("import data is required")
        return v


class ItemOut(BaseModel):
    id: str
    article: str
    location1: str
    status1: StatusOut
    stock1: int
    location2: Optional[str] = None
    status2: Optional[StatusOut] = None
    stock2: int
    barcode: Optional[str] = None

    @classmethod
    def from_item(cls, item: Item) -> "ItemOut":
        return cls(**item.model_dump(mode="json"))


class LogEntryOut(BaseModel):
    id: str
    timestamp: datetime
    article: str
    location: str
    operation: StockOperation
    previous_stock: int
    new_stock: int
    user: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: LogEntry) -> "LogEntryOut":
        return cls(**entry.model_dump(mode="json"))


class NoticeOut(BaseModel):
    level: Literal["success", "warning", "error"]
    title: str
    description: str = ""

    @classmethod
    def from_notice(cls, notice: Notice) -> "NoticeOut":
        return cls(**notice.to_dict())


class StockChangeOut(BaseModel):
    state: Literal["pending", "committed", "rolled_back"]
    item: ItemOut
    log_entry: Optional[LogEntryOut] = None
    warnings: List[str] = []
    notices: List[NoticeOut] = []

    @classmethod
    def from_mutation(cls, mutation: Mutation, notices: List[Notice]) -> "StockChangeOut":
        return cls(
            state=mutation.state.value,
            item=ItemOut.from_item(mutation.item),
            log_entry=LogEntryOut.from_entry(mutation.log_entry) if mutation.log_entry else None,
            warnings=list(mutation.warnings),
            notices=[NoticeOut.from_notice(n) for n in notices],
        )


class ItemListOut(BaseModel):
    items: List[ItemOut]
    notices: List[NoticeOut] = []


class ImportOut(BaseModel):
    imported: int
    notices: List[NoticeOut] = []


class ClearOut(BaseModel):
    items: int
    logs: int
    notices: List[NoticeOut] = []
