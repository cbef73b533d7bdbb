"""Inventory service: wires the record store, the cache and the mutation engine.

Bulk operations (load, refresh, import, clear) and the company logo live here;
single stock changes go through ``StockMutationEngine``.
"""

from typing import List, Optional

import structlog
from fastapi import Request

from core.auth import Session, ensure_admin
from core.cache import InventoryCache
from core.csv_io import export_items, export_logs, parse_items
from core.errors import ImportFormatError, PersistenceFailure
from core.ledger import Item, LogEntry
from core.mutations import Mutation, StockMutationEngine
from core.notifications import LogNotifier, Notifier, error, success
from db.settings import COMPANY_LOGO_KEY
from db.store import RecordStore

logger = structlog.get_logger(__name__)


class InventoryService:
    def __init__(self, store: RecordStore, cache: Optional[InventoryCache] = None, notifier: Optional[Notifier] = None):
        self.store = store
        self.cache = cache if cache is not None else InventoryCache()
        self.notifier = notifier or LogNotifier()
        self.engine = StockMutationEngine(store, self.cache, self.notifier)

    # -- loading ---------------------------------------------------------

    async def load_all(self) -> None:
        items = await self.store.fetch_items()
        logs = await self.store.fetch_logs()
        self.cache.load_all(items, logs)
        logger.info("Inventory loaded", items=len(items), logs=len(logs))

    async def refresh(self, notifier: Optional[Notifier] = None) -> List[Item]:
        notifier = notifier or self.notifier
        try:
            await self.load_all()
        except PersistenceFailure:
            error(notifier, "Error refreshing data", "Could not refresh inventory data. Please try again.")
            raise
        success(notifier, "Data refreshed", "Inventory data has been refreshed.")
        return self.cache.items()

    # -- reads -----------------------------------------------------------

    def search(self, term: str = "") -> List[Item]:
        return self.cache.search(term)

    def empty_items(self) -> List[Item]:
        return self.cache.empty_items()

    def get_item(self, item_id: str) -> Optional[Item]:
        return self.cache.get(item_id)

    def find_by_barcode(self, code: str) -> Optional[Item]:
        return self.cache.find_by_barcode(code)

    def logs(self) -> List[LogEntry]:
        return self.cache.logs()

    # -- stock -----------------------------------------------------------

    async def apply_delta(
        self,
        item_id: str,
        delta: int,
        location: str,
        session: Optional[Session] = None,
        notifier: Optional[Notifier] = None,
    ) -> Mutation:
        return await self.engine.apply_delta(item_id, delta, location, session, notifier=notifier)

    # -- import / export -------------------------------------------------

    async def import_csv(self, text: str, session: Optional[Session], notifier: Optional[Notifier] = None) -> List[Item]:
        """Replace the whole item collection with the parsed rows."""
        notifier = notifier or self.notifier
        ensure_admin(session)
        try:
            items = parse_items(text)
        except ImportFormatError as e:
            error(notifier, "Import failed", e.detail)
            raise

        try:
            await self.store.replace_items(items)
        except PersistenceFailure:
            error(notifier, "Import failed", "Could not import data. Please try again.")
            raise

        self.cache.replace_items(items)
        logger.info("Inventory imported", items=len(items), user=session.username)
        success(notifier, "Import successful", f"{len(items)} items have been imported.")
        return items

    def export_items_csv(self) -> str:
        return export_items(self.cache.items())

    def export_logs_csv(self) -> str:
        return export_logs(self.cache.logs())

    # -- destructive -----------------------------------------------------

    async def clear_all(self, session: Optional[Session], notifier: Optional[Notifier] = None) -> dict:
        """Delete every item and every log entry. Irreversible."""
        notifier = notifier or self.notifier
        ensure_admin(session)
        try:
            logs_n = await self.store.delete_all_logs()
            items_n = await self.store.delete_all_items()
        except PersistenceFailure:
            error(notifier, "Error clearing data", "Could not clear inventory data. Please try again.")
            # Store may be half-cleared; reload to match whatever is left.
            await self._reload_quietly()
            raise
        self.cache.clear_all()
        logger.warning("Inventory cleared", items=items_n, logs=logs_n, user=session.username)
        success(notifier, "Data cleared", f"Deleted {items_n} items and {logs_n} log entries.")
        return {"items": items_n, "logs": logs_n}

    async def _reload_quietly(self) -> None:
        try:
            await self.load_all()
        except PersistenceFailure as e:
            logger.error("Reload after failed clear also failed", error=e.detail)

    # -- company logo ----------------------------------------------------

    async def get_logo(self) -> Optional[str]:
        return await self.store.get_setting(COMPANY_LOGO_KEY)

    async def set_logo(self, data_url: str, session: Optional[Session], notifier: Optional[Notifier] = None) -> str:
        notifier = notifier or self.notifier
        ensure_admin(session)
        try:
            await self.store.set_setting(COMPANY_LOGO_KEY, data_url)
        except PersistenceFailure:
            error(notifier, "Logo upload failed", "Could not upload logo. Please try again.")
            raise
        success(notifier, "Logo updated", "Company logo has been updated successfully.")
        return data_url

    async def remove_logo(self, session: Optional[Session], notifier: Optional[Notifier] = None) -> bool:
        notifier = notifier or self.notifier
        ensure_admin(session)
        try:
            removed = await self.store.delete_setting(COMPANY_LOGO_KEY)
        except PersistenceFailure:
            error(notifier, "Error removing logo", "Could not remove logo. Please try again.")
            raise
        success(notifier, "Logo removed", "Company logo has been removed.")
        return removed


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory
