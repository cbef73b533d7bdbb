import asyncio
import sys
from pathlib import Path

"""
Seed demo inventory (three articles over four locations) into the DB.

Replaces every existing item; the log is left as is.

This script can be run from either:
- backend/: `uv run python scripts/seed_demo_data.py`
- repo root: `uv run python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.ledger import Item
from db.database import async_session_maker, create_db_and_tables
from db.store import RecordStore


DEMO_ITEMS = [
    Item(id="1", article="Art123", location1="Lager1", stock1=3, location2="Lager2", stock2=2, barcode="1234"),
    Item(id="2", article="Art456", location1="Lager3", stock1=0, barcode="C1800000000645"),
    Item(id="3", article="Art789", location1="Lager1", stock1=12, location2="Lager4", stock2=0, barcode="5678"),
]


async def main() -> None:
    await create_db_and_tables()
    store = RecordStore(async_session_maker)
    n = await store.replace_items(DEMO_ITEMS)
    print(f"Seeded {n} inventory items")
    for it in DEMO_ITEMS:
        slots = f"{it.location1}={it.stock1}"
        if it.has_location2:
            slots += f", {it.location2}={it.stock2}"
        print(f"  {it.article}: {slots}")


if __name__ == "__main__":
    asyncio.run(main())
