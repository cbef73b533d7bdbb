"""Stock mutation engine: the only write path for stock figures and log entries.

A mutation is applied in two phases. The recomputed item goes into the cache
immediately (``PENDING``); the store write then either confirms it
(``COMMITTED``) or the cache entry is put back to its snapshot
(``ROLLED_BACK``). The log entry is written only after the item is committed,
and a failed log write never undoes the stock change.

There is no per-item lock. Two concurrent mutations on the same slot race at
the store and the last write wins.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

import structlog

from core.auth import Session
from core.cache import InventoryCache
from core.errors import InvalidDelta, ItemNotFound, LocationNotFound, LogWriteFailure, PersistenceFailure
from core.ledger import Item, LogEntry, Operation, Slot, next_stock, resolve_location_slot, utcnow
from core.notifications import LogNotifier, Notifier, error, success, warning
from db.store import RecordStore

logger = structlog.get_logger(__name__)


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class Mutation:
    item_id: str
    location: str
    slot: Slot
    delta: int
    before: Item
    after: Item
    user: Optional[str] = None
    state: MutationState = MutationState.PENDING
    log_entry: Optional[LogEntry] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def previous_stock(self) -> int:
        return self.before.stock_at(self.slot)

    @property
    def new_stock(self) -> int:
        return self.after.stock_at(self.slot)

    @property
    def operation(self) -> Operation:
        return Operation.from_delta(self.delta)

    @property
    def item(self) -> Item:
        """The item as it stands once the mutation has settled."""
        return self.before if self.state is MutationState.ROLLED_BACK else self.after

    def commit(self) -> None:
        if self.state is not MutationState.PENDING:
            raise RuntimeError(f"cannot commit a {self.state.value} mutation")
        self.state = MutationState.COMMITTED

    def roll_back(self) -> None:
        if self.state is not MutationState.PENDING:
            raise RuntimeError(f"cannot roll back a {self.state.value} mutation")
        self.state = MutationState.ROLLED_BACK


class StockMutationEngine:
    def __init__(
        self,
        store: RecordStore,
        cache: InventoryCache,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.cache = cache
        self.notifier = notifier or LogNotifier()
        self.clock = clock

    def plan(self, item_id: str, delta: int, location: str, session: Optional[Session] = None) -> Mutation:
        """Validate the request and compute the new figures. No side effects."""
        if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
            raise InvalidDelta(f"Stock change must be a non-zero integer, got {delta!r}")

        before = self.cache.get(item_id)
        if before is None:
            raise ItemNotFound(item_id)

        slot = resolve_location_slot(before, location)
        if slot is Slot.NOT_FOUND:
            raise LocationNotFound(item_id, location)

        after = before.with_stock(slot, next_stock(before.stock_at(slot), delta))
        return Mutation(
            item_id=item_id,
            location=location,
            slot=slot,
            delta=delta,
            before=before,
            after=after,
            user=session.username if session is not None else None,
        )

    async def apply_delta(
        self,
        item_id: str,
        delta: int,
        location: str,
        session: Optional[Session] = None,
        notifier: Optional[Notifier] = None,
    ) -> Mutation:
        notifier = notifier or self.notifier
        try:
            mutation = self.plan(item_id, delta, location, session)
        except (ItemNotFound, LocationNotFound, InvalidDelta) as e:
            logger.info("Stock change rejected", item_id=item_id, location=location, delta=delta, reason=e.title)
            error(notifier, "Error updating stock", e.detail)
            raise

        log = logger.bind(item_id=item_id, location=location, delta=delta)

        # 1. tentative cache update
        self.cache.replace_item(mutation.after)

        # 2. persist the item; compensate in the cache on failure
        try:
            await self.store.update_item(mutation.after)
        except PersistenceFailure as e:
            self._revert(mutation)
            log.error("Stock change rolled back", error=e.detail)
            error(notifier, "Error updating stock", "Could not update inventory. Please try again.")
            raise
        except BaseException:
            # cancellation or an unexpected error; the write was never confirmed
            self._revert(mutation)
            log.error("Stock change rolled back after unexpected failure", exc_info=True)
            raise

        mutation.commit()
        log.info(
            "Stock change committed",
            previous_stock=mutation.previous_stock,
            new_stock=mutation.new_stock,
            user=mutation.user,
        )

        # 3. log entry, non-fatal
        entry = LogEntry.record(
            item=mutation.before,
            location=location,
            delta=delta,
            previous_stock=mutation.previous_stock,
            new_stock=mutation.new_stock,
            user=mutation.user,
            clock=self.clock,
        )
        try:
            await self.store.insert_log(entry)
        except LogWriteFailure as e:
            log.warning("Log write failed; stock change kept", error=e.detail)
            message = "Stock was updated but the change could not be written to the log."
            mutation.warnings.append(message)
            warning(notifier, "Log not saved", message)
        else:
            # 4. most-recent-first
            mutation.log_entry = entry
            self.cache.prepend_log(entry)

        item = mutation.after
        success(
            notifier,
            "Stock added" if mutation.operation is Operation.ADD else "Stock removed",
            f"{item.article} at {location} updated successfully.",
        )
        return mutation

    async def add_stock(self, item_id: str, location: str, session: Optional[Session] = None, **kw) -> Mutation:
        return await self.apply_delta(item_id, Operation.ADD.delta, location, session, **kw)

    async def remove_stock(self, item_id: str, location: str, session: Optional[Session] = None, **kw) -> Mutation:
        return await self.apply_delta(item_id, Operation.REMOVE.delta, location, session, **kw)

    def _revert(self, mutation: Mutation) -> None:
        mutation.roll_back()
        current = self.cache.get(mutation.item_id)
        if current is mutation.after:
            self.cache.replace_item(mutation.before)
        else:
            # Something else replaced the entry meanwhile (refresh, import, clear); leave it.
            logger.warning("Cache entry changed during failed write; not reverted", item_id=mutation.item_id)
