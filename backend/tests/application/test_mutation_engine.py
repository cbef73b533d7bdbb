from datetime import datetime, timezone

import anyio
import pytest

from core.errors import InvalidDelta, ItemNotFound, LocationNotFound, PersistenceFailure, StoreTimeout
from core.ledger import Operation, Slot, Status
from core.mutations import MutationState
from core.notifications import NoticeLevel

pytestmark = pytest.mark.anyio

FIXED_NOW = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def mutations(service):
    service.engine.clock = lambda: FIXED_NOW
    return service.engine


async def test_remove_at_second_location(service, mutations, store, production, notifier):
    mutation = await mutations.apply_delta("1", -1, "Lager2", production)

    assert mutation.state is MutationState.COMMITTED
    assert mutation.slot is Slot.SLOT2
    assert (mutation.previous_stock, mutation.new_stock) == (2, 1)

    item = service.get_item("1")
    assert (item.stock1, item.stock2) == (3, 1)
    assert item.status2 is Status.IN_STOCK

    (entry,) = service.logs()
    assert entry == mutation.log_entry
    assert entry.article == "Art123"
    assert entry.location == "Lager2"
    assert entry.operation is Operation.REMOVE
    assert (entry.previous_stock, entry.new_stock) == (2, 1)
    assert entry.user == "Production"
    assert entry.timestamp == FIXED_NOW

    assert (await store.fetch_item("1")).stock2 == 1
    assert [e.id for e in await store.fetch_logs()] == [entry.id]
    assert notifier.levels() == [NoticeLevel.SUCCESS]
    assert notifier.notices[0].title == "Stock removed"


async def test_remove_clamps_at_zero_and_still_logs(service, mutations, production):
    results = []
    for _ in range(3):
        m = await mutations.remove_stock("1", "Lager2", production)
        results.append((m.previous_stock, m.new_stock))

    assert results == [(2, 1), (1, 0), (0, 0)]
    assert service.get_item("1").stock2 == 0
    assert service.get_item("1").status2 is Status.OUT_OF_STOCK
    assert len(service.logs()) == 3
    # most recent first
    assert [(e.previous_stock, e.new_stock) for e in service.logs()] == [(0, 0), (1, 0), (2, 1)]


async def test_add_at_first_location(service, mutations, admin, notifier):
    mutation = await mutations.add_stock("2", "Lager3", admin)

    assert (mutation.previous_stock, mutation.new_stock) == (0, 1)
    assert service.get_item("2").status1 is Status.IN_STOCK
    assert service.logs()[0].operation is Operation.ADD
    assert service.logs()[0].user == "Admin"
    assert notifier.notices[-1].title == "Stock added"


async def test_larger_deltas(service, mutations, admin):
    await mutations.apply_delta("3", 5, "Lager1", admin)
    await mutations.apply_delta("3", -20, "Lager1", admin)
    assert service.get_item("3").stock1 == 0
    assert [(e.previous_stock, e.new_stock) for e in service.logs()] == [(17, 0), (12, 17)]


async def test_location_match_is_exact(service, mutations, store, admin, notifier):
    for location in ("Lager9", "lager2", " Lager2", ""):
        with pytest.raises(LocationNotFound):
            await mutations.apply_delta("1", 1, location, admin)

    assert service.get_item("1").stock2 == 2
    assert service.logs() == []
    assert await store.fetch_logs() == []
    assert set(notifier.levels()) == {NoticeLevel.ERROR}


async def test_unassigned_second_location_never_matches(service, mutations, admin):
    with pytest.raises(LocationNotFound):
        await mutations.apply_delta("2", 1, "", admin)
    assert service.get_item("2").stock2 == 0


async def test_unknown_item(service, mutations, admin):
    with pytest.raises(ItemNotFound):
        await mutations.apply_delta("nope", 1, "Lager1", admin)
    assert service.logs() == []


@pytest.mark.parametrize("delta", [0, True, 1.5, "1"])
async def test_invalid_delta(service, mutations, admin, delta):
    with pytest.raises(InvalidDelta):
        await mutations.apply_delta("1", delta, "Lager1", admin)
    assert service.get_item("1").stock1 == 3


async def test_item_write_failure_rolls_back(service, mutations, store, admin, notifier):
    before = service.get_item("1")
    store.fail_update = True

    with pytest.raises(PersistenceFailure):
        await mutations.apply_delta("1", -1, "Lager1", admin)

    assert service.get_item("1") is before
    assert service.logs() == []
    assert await store.fetch_logs() == []
    assert (await store.fetch_item("1")).stock1 == 3
    assert notifier.levels() == [NoticeLevel.ERROR]
    assert notifier.notices[0].title == "Error updating stock"


async def test_item_write_timeout_rolls_back(service, mutations, store, admin):
    store.timeout_update = True

    with pytest.raises(StoreTimeout):
        await mutations.apply_delta("1", 1, "Lager2", admin)

    assert service.get_item("1").stock2 == 2
    assert service.logs() == []


async def test_rolled_back_mutation_state(service, mutations, store, admin):
    store.fail_update = True
    mutation = mutations.plan("1", 1, "Lager1", admin)
    service.cache.replace_item(mutation.after)

    with pytest.raises(PersistenceFailure):
        await store.update_item(mutation.after)
    mutations._revert(mutation)

    assert mutation.state is MutationState.ROLLED_BACK
    assert mutation.item == mutation.before
    assert service.get_item("1") == mutation.before
    with pytest.raises(RuntimeError):
        mutation.commit()


async def test_revert_leaves_a_newer_cache_entry_alone(service, mutations, admin):
    mutation = mutations.plan("1", 1, "Lager1", admin)
    service.cache.replace_item(mutation.after)
    newer = mutation.after.with_stock(Slot.SLOT1, 50)
    service.cache.replace_item(newer)

    mutations._revert(mutation)
    assert service.get_item("1") is newer


async def test_log_write_failure_keeps_stock_change(service, mutations, store, admin, notifier):
    store.fail_log = True

    mutation = await mutations.apply_delta("1", -1, "Lager1", admin)

    assert mutation.state is MutationState.COMMITTED
    assert mutation.log_entry is None
    assert mutation.warnings
    assert service.get_item("1").stock1 == 2
    assert (await store.fetch_item("1")).stock1 == 2
    assert service.logs() == []
    assert await store.fetch_logs() == []
    assert notifier.levels() == [NoticeLevel.WARNING, NoticeLevel.SUCCESS]


async def test_plan_has_no_side_effects(service, mutations, admin):
    mutation = mutations.plan("1", 1, "Lager1", admin)
    assert mutation.state is MutationState.PENDING
    assert mutation.after.stock1 == 4
    assert service.get_item("1").stock1 == 3


async def test_mutation_without_session_logs_no_user(service, mutations):
    await mutations.apply_delta("1", 1, "Lager1")
    assert service.logs()[0].user is None


async def test_cache_holds_new_figure_while_write_is_pending(service, mutations, store, admin, monkeypatch):
    entered, release = anyio.Event(), anyio.Event()
    write = store.update_item

    async def slow_update(item):
        entered.set()
        await release.wait()
        return await write(item)

    monkeypatch.setattr(store, "update_item", slow_update)

    async with anyio.create_task_group() as tg:
        tg.start_soon(mutations.apply_delta, "1", 1, "Lager1", admin)
        await entered.wait()
        assert service.get_item("1").stock1 == 4
        assert (await store.fetch_item("1")).stock1 == 3
        assert service.logs() == []
        release.set()

    assert (await store.fetch_item("1")).stock1 == 4
    assert len(service.logs()) == 1


async def test_cancelled_write_rolls_back(service, mutations, store, admin, monkeypatch):
    entered = anyio.Event()

    async def hanging_update(item):
        entered.set()
        await anyio.sleep_forever()

    monkeypatch.setattr(store, "update_item", hanging_update)

    async with anyio.create_task_group() as tg:
        tg.start_soon(mutations.apply_delta, "1", 1, "Lager1", admin)
        await entered.wait()
        assert service.get_item("1").stock1 == 4
        tg.cancel_scope.cancel()

    assert service.get_item("1").stock1 == 3
    assert service.logs() == []


async def test_unexpected_write_error_rolls_back(service, mutations, store, admin, monkeypatch):
    async def broken_update(item):
        raise RuntimeError("driver crashed")

    monkeypatch.setattr(store, "update_item", broken_update)

    with pytest.raises(RuntimeError):
        await mutations.apply_delta("1", -1, "Lager2", admin)

    assert service.get_item("1").stock2 == 2
    assert service.logs() == []


async def test_value_too_large_for_the_store_rolls_back(service, mutations, store, admin, notifier):
    with pytest.raises(PersistenceFailure):
        await mutations.apply_delta("1", 2**63, "Lager1", admin)

    assert service.get_item("1").stock1 == 3
    assert (await store.fetch_item("1")).stock1 == 3
    assert service.logs() == []
    assert notifier.levels() == [NoticeLevel.ERROR]
