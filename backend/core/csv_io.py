"""CSV import/export for items and the change log.

Export joins values with commas and does not quote them, so an article name
containing a comma does not survive a round trip.
"""

import uuid
from typing import Iterable, List, Optional

from pydantic import ValidationError

from core.errors import ImportFormatError
from core.ledger import Item, LogEntry

ITEM_EXPORT_HEADER = ["Article", "Location1", "Status1", "Stock1", "Location2", "Status2", "Stock2", "Barcode"]
LOG_EXPORT_HEADER = ["Timestamp", "Article", "Location", "Operation", "PreviousStock", "NewStock", "User"]

# column index per field
IMPORT_LAYOUT = {"article": 0, "location1": 1, "stock1": 2, "location2": 3, "stock2": 4, "barcode": 5}
EXPORT_LAYOUT = {"article": 0, "location1": 1, "stock1": 3, "location2": 4, "stock2": 6, "barcode": 7}

MIN_COLUMNS = 3


def _parse_stock(raw: Optional[str]) -> int:
    try:
        return max(0, int((raw or "").strip()))
    except ValueError:
        return 0


def _cell(values: List[str], index: int) -> str:
    return values[index].strip() if index < len(values) else ""


def _layout_for(header: List[str]) -> dict:
    names = {h.strip().lower().replace(" ", "") for h in header}
    return EXPORT_LAYOUT if "status1" in names else IMPORT_LAYOUT


def parse_items(text: str) -> List[Item]:
    """
    Parse delimited text into items.

    - Tab-separated if the header line contains a tab, comma-separated otherwise.
    - Rows with an empty first column are skipped.
    - Unparsable or negative stock values become 0.
    - Statuses are never read; they follow from stock.
    """
    lines = [ln.rstrip("\r") for ln in (text or "").strip().splitlines()]
    if not lines or not lines[0].strip():
        raise ImportFormatError("Import data is empty")

    delimiter = "\t" if "\t" in lines[0] else ","
    layout = _layout_for(lines[0].split(delimiter))

    items: List[Item] = []
    for lineno, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        values = line.split(delimiter)
        if not _cell(values, 0):
            continue
        if len(values) < MIN_COLUMNS:
            raise ImportFormatError(
                f"Line {lineno}: expected at least {MIN_COLUMNS} columns, got {len(values)}"
            )
        try:
            items.append(
                Item(
                    id=uuid.uuid4().hex,
                    article=_cell(values, layout["article"]),
                    location1=_cell(values, layout["location1"]),
                    stock1=_parse_stock(_cell(values, layout["stock1"])),
                    location2=_cell(values, layout["location2"]) or None,
                    stock2=_parse_stock(_cell(values, layout["stock2"])),
                    barcode=_cell(values, layout["barcode"]) or None,
                )
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise ImportFormatError(f"Line {lineno}: invalid value for {fields}") from e

    if not items:
        raise ImportFormatError("Import data has no item rows")
    return items


def export_items(items: Iterable[Item]) -> str:
    rows = [",".join(ITEM_EXPORT_HEADER)]
    for it in items:
        rows.append(
            ",".join(
                [
                    it.article,
                    it.location1,
                    it.status1.value,
                    str(it.stock1),
                    it.location2 or "",
                    it.status2.value if it.status2 is not None else "",
                    str(it.stock2 if it.has_location2 else 0),
                    it.barcode or "",
                ]
            )
        )
    return "\n".join(rows)


def export_logs(logs: Iterable[LogEntry]) -> str:
    rows = [",".join(LOG_EXPORT_HEADER)]
    for entry in logs:
        rows.append(
            ",".join(
                [
                    entry.timestamp.isoformat(),
                    entry.article,
                    entry.location,
                    entry.operation.value,
                    str(entry.previous_stock),
                    str(entry.new_stock),
                    entry.user or "",
                ]
            )
        )
    return "\n".join(rows)
