"""In-process mirror of the persisted items and logs.

Items keep the order they were loaded in; logs are kept most-recent-first.
Search and the empty-items report are computed from the current contents on
every call and never stored.
"""

from typing import Callable, Dict, Iterable, List, Optional

from core.ledger import Item, LogEntry, is_empty


def matches_search(term: str) -> Callable[[Item], bool]:
    needle = (term or "").strip().lower()

    def _match(item: Item) -> bool:
        if not needle:
            return True
        if needle in item.article.lower() or needle in item.location1.lower():
            return True
        return item.location2 is not None and needle in item.location2.lower()

    return _match


class InventoryCache:
    def __init__(self) -> None:
        self._items: Dict[str, Item] = {}
        self._logs: List[LogEntry] = []

    def load_all(self, items: Iterable[Item], logs: Iterable[LogEntry]) -> None:
        self._items = {it.id: it for it in items}
        self._logs = list(logs)

    def replace_items(self, items: Iterable[Item]) -> None:
        self._items = {it.id: it for it in items}

    def replace_item(self, item: Item) -> None:
        # Keeps the item's position; dict assignment to an existing key does not reorder.
        self._items[item.id] = item

    def prepend_log(self, entry: LogEntry) -> None:
        self._logs.insert(0, entry)

    def clear_all(self) -> None:
        self._items = {}
        self._logs = []

    def get(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def items(self) -> List[Item]:
        return list(self._items.values())

    def logs(self) -> List[LogEntry]:
        return list(self._logs)

    def filter(self, predicate: Callable[[Item], bool]) -> List[Item]:
        return [it for it in self._items.values() if predicate(it)]

    def search(self, term: str) -> List[Item]:
        return self.filter(matches_search(term))

    def empty_items(self) -> List[Item]:
        return self.filter(is_empty)

    def find_by_barcode(self, code: str) -> Optional[Item]:
        for it in self._items.values():
            if it.barcode is not None and it.barcode == code:
                return it
        return None

    def __len__(self) -> int:
        return len(self._items)
