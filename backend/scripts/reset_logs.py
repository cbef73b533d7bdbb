"""
Delete ALL log entries from the database. Items and stock are left untouched.

Run from backend/:
  PYTHONPATH=. uv run python scripts/reset_logs.py
"""

from __future__ import annotations

import asyncio

from db.database import async_session_maker, create_db_and_tables
from db.store import RecordStore


async def main() -> None:
    await create_db_and_tables()
    store = RecordStore(async_session_maker)
    logs_n = await store.delete_all_logs()
    print(f"Deleted logs: {logs_n}")


if __name__ == "__main__":
    asyncio.run(main())
