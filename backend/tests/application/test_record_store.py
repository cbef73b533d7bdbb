import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from core.errors import LogWriteFailure, PersistenceFailure, StoreTimeout
from core.ledger import Item, LogEntry
from db.store import RecordStore

from tests.factories import demo_items

pytestmark = pytest.mark.anyio


def _entry(article="Art123", ts=None):
    return LogEntry.record(
        item=Item(id="x", article=article, location1="Lager1"),
        location="Lager1",
        delta=1,
        previous_stock=0,
        new_stock=1,
        user="Admin",
        clock=lambda: ts or datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


async def test_items_round_trip(store):
    items = await store.fetch_items()
    assert items == demo_items()


async def test_update_item(store):
    item = demo_items()[0].model_copy(update={"stock2": 0})
    await store.update_item(item)
    assert (await store.fetch_item("1")).stock2 == 0


async def test_update_missing_item_fails(store):
    with pytest.raises(PersistenceFailure):
        await store.update_item(Item(id="ghost", article="A", location1="L"))


async def test_logs_come_back_most_recent_first_and_timezone_aware(store):
    older = _entry("Old", datetime(2024, 1, 1, tzinfo=timezone.utc))
    newer = _entry("New", datetime(2024, 2, 1, tzinfo=timezone.utc))
    await store.insert_log(older)
    await store.insert_log(newer)

    logs = await store.fetch_logs()
    assert [e.article for e in logs] == ["New", "Old"]
    assert logs[0].timestamp == newer.timestamp
    assert logs[0].timestamp.tzinfo is not None


async def test_delete_counts(store):
    await store.insert_log(_entry())
    assert await store.delete_all_logs() == 1
    assert await store.delete_all_items() == 3
    assert await store.fetch_items() == []


async def test_slow_call_times_out(session_maker):
    store = RecordStore(session_maker, timeout=0.01)

    async def slow(db):
        await asyncio.sleep(1)

    with pytest.raises(StoreTimeout):
        await store._run("slow", slow)


async def test_slow_log_write_is_a_log_failure(session_maker):
    store = RecordStore(session_maker, timeout=0.01)

    async def slow(db):
        await asyncio.sleep(1)

    with pytest.raises(LogWriteFailure):
        await store._run("insert_log", slow, failure=LogWriteFailure)


async def test_database_errors_are_wrapped(session_maker):
    store = RecordStore(session_maker, timeout=5)

    async def broken(db):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with pytest.raises(PersistenceFailure) as exc:
        await store._run("fetch_items", broken)
    assert not isinstance(exc.value, StoreTimeout)
    assert "fetch_items failed" in exc.value.detail


async def test_settings(store):
    assert await store.get_setting("company_logo") is None
    await store.set_setting("company_logo", "data:image/png;base64,AAAA")
    assert await store.get_setting("company_logo") == "data:image/png;base64,AAAA"
    assert await store.delete_setting("company_logo") is True
    assert await store.delete_setting("company_logo") is False


async def test_driver_value_errors_are_wrapped(session_maker):
    store = RecordStore(session_maker, timeout=5)

    async def overflow(db):
        raise OverflowError("Python int too large to convert to SQLite INTEGER")

    with pytest.raises(PersistenceFailure):
        await store._run("update_item", overflow)
    with pytest.raises(LogWriteFailure):
        await store._run("insert_log", overflow, failure=LogWriteFailure)
