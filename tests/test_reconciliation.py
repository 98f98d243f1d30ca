import asyncio

import pytest

from domain import days
from domain.errors import MalformedInputError, RemoteStoreError
from domain.schedule import ScheduleGrid, default_grid, set_slot
from services.reconciliation import ReconciliationStore, merge

WEEK = "a1_2025-03-03"
NEXT_WEEK = "a1_2025-03-10"


class MemoryRemote:
    def __init__(self, grids=None, fail_reads=False, fail_writes=False):
        self.grids = dict(grids or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.writes = []

    async def fetch_agent(self, agent_id):
        await asyncio.sleep(0)
        if self.fail_reads:
            raise ConnectionError("remote unreachable")
        return {key: grid for key, grid in self.grids.items() if key.startswith(f"{agent_id}_")}

    async def upsert(self, agent_id, week_key, grid):
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RemoteStoreError("write refused")
        self.writes.append(week_key)
        self.grids[week_key] = grid


def edited(key, day="monday"):
    return set_slot(default_grid(key), day, "morning", days.OFF)


def test_merge_prefers_remote_and_keeps_local_only():
    local = {WEEK: edited(WEEK, "monday"), NEXT_WEEK: edited(NEXT_WEEK)}
    remote = {WEEK: edited(WEEK, "friday")}
    merged = merge(local, remote)
    assert merged[WEEK] is remote[WEEK]
    assert merged[NEXT_WEEK] is local[NEXT_WEEK]


def test_save_updates_cache_before_remote_confirms():
    remote = MemoryRemote()
    store = ReconciliationStore(remote)

    async def scenario():
        receipt = store.save("a1", WEEK, edited(WEEK))
        assert store.get("a1", WEEK).slot("monday", "morning").status == days.OFF
        assert store.pending_keys("a1") == [WEEK]
        assert remote.writes == []
        return receipt, await receipt.confirm()

    receipt, error = asyncio.run(scenario())
    assert error is None
    assert receipt.ok and receipt.settled
    assert remote.writes == [WEEK]
    assert store.pending_keys() == []


def test_failed_write_keeps_local_copy_and_pending_key():
    store = ReconciliationStore(MemoryRemote(fail_writes=True))

    async def scenario():
        store.save("a1", WEEK, edited(WEEK))
        return await store.flush()

    errors = asyncio.run(scenario())
    assert len(errors) == 1
    assert errors[0].week_key == WEEK
    assert store.get("a1", WEEK) == edited(WEEK)
    assert store.pending_keys("a1") == [WEEK]


def test_load_merges_remote_into_cache():
    remote = MemoryRemote({WEEK: edited(WEEK, "friday"), "a2_2025-03-03": default_grid()})
    store = ReconciliationStore(remote)

    async def scenario():
        remote.fail_writes = True
        store.save("a1", WEEK, edited(WEEK, "monday"))
        store.save("a1", NEXT_WEEK, edited(NEXT_WEEK))
        await store.flush()
        return await store.load("a1")

    loaded = asyncio.run(scenario())
    assert set(loaded) == {WEEK, NEXT_WEEK}
    assert store.get("a1", WEEK).slot("friday", "morning").status == days.OFF
    assert store.get("a1", WEEK).slot("monday", "morning").status == days.WORKING
    assert store.pending_keys("a1") == [NEXT_WEEK]


def test_failed_load_leaves_cache_untouched():
    remote = MemoryRemote()
    store = ReconciliationStore(remote)

    async def scenario():
        await store.save("a1", WEEK, edited(WEEK)).confirm()
        remote.fail_reads = True
        await store.load("a1")

    with pytest.raises(RemoteStoreError):
        asyncio.run(scenario())
    assert store.get("a1", WEEK) == edited(WEEK)


def test_unknown_week_reads_as_default():
    store = ReconciliationStore(MemoryRemote())
    assert store.get("a1", WEEK) is None
    grid = store.grid_for("a1", WEEK)
    assert grid == default_grid()
    assert grid.week_key == WEEK


def test_save_rejects_foreign_key_and_incomplete_grid():
    store = ReconciliationStore(MemoryRemote())

    async def foreign():
        store.save("a2", WEEK, default_grid())

    async def incomplete():
        store.save_all("a1", {WEEK: default_grid(), NEXT_WEEK: ScheduleGrid()})

    with pytest.raises(MalformedInputError):
        asyncio.run(foreign())
    with pytest.raises(MalformedInputError):
        asyncio.run(incomplete())
    assert store.get("a1", WEEK) is None
    assert store.get("a1", NEXT_WEEK) is None


def test_save_all_writes_weeks_in_order():
    remote = MemoryRemote()
    store = ReconciliationStore(remote)

    async def scenario():
        receipts = store.save_all("a1", {NEXT_WEEK: default_grid(), WEEK: default_grid()})
        await store.flush()
        return receipts

    receipts = asyncio.run(scenario())
    assert [receipt.week_key for receipt in receipts] == [WEEK, NEXT_WEEK]
    assert remote.writes == [WEEK, NEXT_WEEK]
