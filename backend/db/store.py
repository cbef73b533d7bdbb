"""Record store: typed, timeout-bounded access to the inventory, logs and settings tables.

Rows are validated into ledger records here; nothing past this module sees a
raw ORM row. SQLAlchemy errors are wrapped into ``PersistenceFailure``.
"""

import asyncio
from datetime import timezone
from typing import Awaitable, Callable, List, Optional, Type, TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.errors import LogWriteFailure, PersistenceFailure, StoreTimeout
from core.ledger import Item, LogEntry
from db.inventory.item import InventoryItemRow
from db.inventory.log import InventoryLogRow
from db.settings import SettingRow

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _coerce_stock(value) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def item_from_row(row: InventoryItemRow) -> Item:
    # status1/status2 columns are ignored; Item derives them from stock
    return Item.model_validate(
        {
            "id": row.id,
            "article": row.article,
            "location1": row.location1,
            "location2": row.location2,
            "stock1": _coerce_stock(row.stock1),
            "stock2": _coerce_stock(row.stock2),
            "barcode": row.barcode,
        }
    )


def item_to_values(item: Item) -> dict:
    return {
        "id": item.id,
        "article": item.article,
        "location1": item.location1,
        "location2": item.location2,
        "status1": item.status1.value,
        "status2": item.status2.value if item.status2 is not None else None,
        "stock1": item.stock1,
        "stock2": item.stock2 if item.has_location2 else 0,
        "barcode": item.barcode,
    }


def log_from_row(row: InventoryLogRow) -> LogEntry:
    ts = row.timestamp
    if ts is not None and ts.tzinfo is None:
        # SQLite hands back naive datetimes; they were written as UTC
        ts = ts.replace(tzinfo=timezone.utc)
    return LogEntry.model_validate(
        {
            "id": row.id,
            "timestamp": ts,
            "article": row.article,
            "location": row.location,
            "operation": row.operation,
            "previous_stock": _coerce_stock(row.previous_stock),
            "new_stock": _coerce_stock(row.new_stock),
            "user": row.user,
        }
    )


def log_to_values(entry: LogEntry) -> dict:
    return {
        "id": entry.id,
        "timestamp": entry.timestamp,
        "article": entry.article,
        "location": entry.location,
        "operation": entry.operation.value,
        "previous_stock": entry.previous_stock,
        "new_stock": entry.new_stock,
        "user": entry.user,
    }


class RecordStore:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        timeout: Optional[float] = None,
    ):
        self._session_maker = session_maker
        self.timeout = settings.store_timeout_seconds if timeout is None else timeout

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
        failure: Type[PersistenceFailure] = PersistenceFailure,
    ) -> T:
        async def _in_session() -> T:
            async with self._session_maker() as db:
                return await work(db)

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("Record store call timed out", operation=operation, timeout=self.timeout)
            if failure is PersistenceFailure:
                raise StoreTimeout(f"{operation} timed out after {self.timeout}s") from e
            raise failure(f"{operation} timed out after {self.timeout}s") from e
        except SQLAlchemyError as e:
            logger.error("Record store call failed", operation=operation, error=repr(e))
            raise failure(f"{operation} failed: {e}") from e
        except (OverflowError, ValueError) as e:
            # driver-level conversion errors, e.g. an integer too large for the column
            logger.error("Record store rejected a value", operation=operation, error=repr(e))
            raise failure(f"{operation} failed: {e}") from e

    # -- inventory -------------------------------------------------------

    async def fetch_items(self) -> List[Item]:
        async def work(db: AsyncSession) -> List[Item]:
            res = await db.execute(
                select(InventoryItemRow).order_by(
                    func.lower(InventoryItemRow.article).asc(), InventoryItemRow.id.asc()
                )
            )
            out = []
            for row in res.scalars().all():
                try:
                    out.append(item_from_row(row))
                except ValidationError as e:
                    logger.warning("Skipping malformed inventory row", item_id=row.id, errors=e.errors())
            return out

        return await self._run("fetch_items", work)

    async def fetch_item(self, item_id: str) -> Optional[Item]:
        async def work(db: AsyncSession) -> Optional[Item]:
            row = await db.get(InventoryItemRow, item_id)
            return item_from_row(row) if row is not None else None

        return await self._run("fetch_item", work)

    async def update_item(self, item: Item) -> Item:
        """Full-record update keyed by ``item.id``."""

        async def work(db: AsyncSession) -> Item:
            row = await db.get(InventoryItemRow, item.id)
            if row is None:
                raise PersistenceFailure(f"Item {item.id!r} does not exist in the record store")
            for key, value in item_to_values(item).items():
                setattr(row, key, value)
            await db.commit()
            return item

        return await self._run("update_item", work)

    async def replace_items(self, items: List[Item]) -> int:
        """Delete every item, then insert ``items``, in one transaction."""

        async def work(db: AsyncSession) -> int:
            await db.execute(delete(InventoryItemRow))
            db.add_all([InventoryItemRow(**item_to_values(it)) for it in items])
            await db.commit()
            return len(items)

        return await self._run("replace_items", work)

    async def delete_all_items(self) -> int:
        async def work(db: AsyncSession) -> int:
            res = await db.execute(delete(InventoryItemRow))
            await db.commit()
            return int(getattr(res, "rowcount", 0) or 0)

        return await self._run("delete_all_items", work)

    # -- logs ------------------------------------------------------------

    async def fetch_logs(self) -> List[LogEntry]:
        async def work(db: AsyncSession) -> List[LogEntry]:
            res = await db.execute(
                select(InventoryLogRow).order_by(InventoryLogRow.timestamp.desc(), InventoryLogRow.id.desc())
            )
            out = []
            for row in res.scalars().all():
                try:
                    out.append(log_from_row(row))
                except ValidationError as e:
                    logger.warning("Skipping malformed log row", log_id=row.id, errors=e.errors())
            return out

        return await self._run("fetch_logs", work)

    async def insert_log(self, entry: LogEntry) -> LogEntry:
        async def work(db: AsyncSession) -> LogEntry:
            db.add(InventoryLogRow(**log_to_values(entry)))
            await db.commit()
            return entry

        return await self._run("insert_log", work, failure=LogWriteFailure)

    async def delete_all_logs(self) -> int:
        async def work(db: AsyncSession) -> int:
            res = await db.execute(delete(InventoryLogRow))
            await db.commit()
            return int(getattr(res, "rowcount", 0) or 0)

        return await self._run("delete_all_logs", work)

    # -- settings --------------------------------------------------------

    async def get_setting(self, key: str) -> Optional[str]:
        async def work(db: AsyncSession) -> Optional[str]:
            row = await db.get(SettingRow, key)
            return row.value if row is not None else None

        return await self._run("get_setting", work)

    async def set_setting(self, key: str, value: str) -> None:
        async def work(db: AsyncSession) -> None:
            row = await db.get(SettingRow, key)
            if row is None:
                db.add(SettingRow(key=key, value=value))
            else:
                row.value = value
            await db.commit()

        await self._run("set_setting", work)

    async def delete_setting(self, key: str) -> bool:
        async def work(db: AsyncSession) -> bool:
            res = await db.execute(delete(SettingRow).where(SettingRow.key == key))
            await db.commit()
            return bool(getattr(res, "rowcount", 0))

        return await self._run("delete_setting", work)
