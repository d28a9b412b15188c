"""Tests de la page Succursales & Horaires / Branches & Hours page tests."""

import pytest

from app.schemas.timing import TimingRowBase
from app.services.branch_timing import BranchTimingService
from app.services.timing_page import BranchTimingPage, LoadStatus, SaveStatus, TimingCache
from app.services.timing_store import StoreError, TimingDeleteError, TimingInsertError, TimingStore


async def _page_with_branch(store, name="Main Branch"):
    await store.create_branch(name, "1 Library Square")
    page = BranchTimingPage(store)
    await page.load_branches()
    await page.select_branch(page.active_branch_id)
    return page


def test_cache_get_put_invalidate():
    cache = TimingCache()
    view = BranchTimingService.build_empty_view(1, "Main")
    assert cache.get(1) is None
    cache.put(1, view)
    assert 1 in cache and cache.get(1) is view
    cache.invalidate(1)
    cache.invalidate(1)
    assert 1 not in cache and len(cache) == 0


async def test_load_branches_selects_first(store):
    await store.create_branch("Zeta Branch")
    await store.create_branch("Alpha Branch", "North Road")
    page = BranchTimingPage(store)

    await page.load_branches()

    assert page.branches_status == LoadStatus.LOADED
    assert [b.name for b in page.branches] == ["Alpha Branch", "Zeta Branch"]
    assert page.active_branch.name == "Alpha Branch"

    page.filter_text = "north"
    assert [b.name for b in page.filtered_branches] == ["Alpha Branch"]
    page.filter_text = "  "
    assert len(page.filtered_branches) == 2


async def test_load_branches_error_banner():
    class BrokenStore:
        async def fetch_branches(self):
            raise StoreError("connection refused")

    page = BranchTimingPage(BrokenStore())
    await page.load_branches()

    assert page.branches_status == LoadStatus.ERROR
    assert page.branches_error == "connection refused"
    assert page.branches == []


async def test_select_branch_uses_cache(store):
    page = await _page_with_branch(store)
    calls = []
    original = store.fetch_timings

    async def counting(branch_id):
        calls.append(branch_id)
        return await original(branch_id)

    store.fetch_timings = counting
    await page.select_branch(page.active_branch_id)
    assert calls == []

    await page.load_timings(page.active_branch_id, force=True)
    assert calls == [page.active_branch_id]


async def test_empty_branch_loads_defaults(store):
    page = await _page_with_branch(store)
    value = page.active_value
    assert page.timing_status(page.active_branch_id) == LoadStatus.LOADED
    assert value.weekly == BranchTimingService.build_default_weekly()
    assert value.overrides == []
    assert value.branch_name == "Main Branch"


async def test_edit_marks_dirty_and_save_reloads(store):
    page = await _page_with_branch(store)
    assert not page.can_save

    editor = page.editor()
    editor.change_weekday(6, {"is_closed": True})
    editor.add_override()
    editor.change_override(editor.value.overrides[0].id, {"note": "Inventory day"})
    assert page.dirty and page.can_save
    assert page.cache.get(page.active_branch_id) is editor.value

    assert await page.save() is True

    assert not page.dirty
    assert page.save_status == SaveStatus.IDLE
    rows = await store.fetch_timings(page.active_branch_id)
    assert len(rows) == 14
    reloaded = page.active_value
    assert reloaded.weekly[6].is_closed
    assert len(reloaded.overrides) == 1
    assert reloaded.overrides[0].note == ""


async def test_save_replaces_previous_rows(store):
    page = await _page_with_branch(store)
    editor = page.editor()
    editor.add_override()
    await page.save()
    assert len(await store.fetch_timings(page.active_branch_id)) == 14

    editor = page.editor()
    editor.delete_override(editor.value.overrides[0].id)
    await page.save()
    assert len(await store.fetch_timings(page.active_branch_id)) == 7


async def test_delete_then_fail_leaves_empty_state(store):
    page = await _page_with_branch(store)
    editor = page.editor()
    editor.change_weekday(0, {"open": "07:00"})
    editor.add_override()
    await page.save()
    branch_id = page.active_branch_id

    editor = page.editor()
    editor.change_weekday(1, {"is_closed": True})

    async def failing_insert(session, rows):
        raise TimingInsertError("Failed to save timings: insert rejected")

    store._insert_rows = failing_insert
    assert await page.save() is False

    assert page.save_status == SaveStatus.ERROR
    assert page.timings_error == "Failed to save timings: insert rejected"
    assert page.dirty
    assert await store.fetch_timings(branch_id) == []

    await page.load_timings(branch_id, force=True)
    value = page.active_value
    assert value.weekly == BranchTimingService.build_default_weekly()
    assert value.overrides == []


async def test_delete_failure_keeps_previous_rows(store):
    page = await _page_with_branch(store)
    editor = page.editor()
    editor.add_override()
    await page.save()
    branch_id = page.active_branch_id
    before = await store.fetch_timings(branch_id)
    assert len(before) == 14

    editor = page.editor()
    editor.change_weekday(2, {"is_closed": True})

    inserts = []

    async def failing_delete(session, branch_id):
        raise TimingDeleteError("Failed to save timings: delete rejected")

    async def recording_insert(session, rows):
        inserts.append(rows)

    store._delete_rows = failing_delete
    store._insert_rows = recording_insert
    assert await page.save() is False

    assert page.save_status == SaveStatus.ERROR
    assert page.timings_error == "Failed to save timings: delete rejected"
    assert page.dirty
    assert inserts == []
    assert await store.fetch_timings(branch_id) == before

    with pytest.raises(TimingDeleteError) as exc_info:
        await store.replace_timings(branch_id, BranchTimingService.expand_view(page.active_value))
    assert exc_info.value.phase == "delete"
    assert inserts == []


async def test_unexpected_save_error_releases_saving(store):
    page = await _page_with_branch(store)
    page.editor().change_weekday(0, {"open": "08:00"})

    async def refused(branch_id, rows):
        raise ConnectionRefusedError("backend unreachable")

    store.replace_timings = refused
    with pytest.raises(ConnectionRefusedError):
        await page.save()

    assert page.save_status == SaveStatus.ERROR
    assert not page.saving
    assert page.dirty
    assert page.can_save


async def test_unexpected_load_error_releases_loading(store):
    page = await _page_with_branch(store)
    branch_id = page.active_branch_id

    async def refused(branch_id):
        raise ConnectionRefusedError("backend unreachable")

    store.fetch_timings = refused
    with pytest.raises(ConnectionRefusedError):
        await page.load_timings(branch_id, force=True)

    assert page.timing_status(branch_id) == LoadStatus.ERROR
    assert not page.timings_loading

    async def refused_branches():
        raise ConnectionRefusedError("backend unreachable")

    store.fetch_branches = refused_branches
    with pytest.raises(ConnectionRefusedError):
        await page.load_branches()
    assert page.branches_status == LoadStatus.ERROR


async def test_atomic_save_keeps_rows_on_insert_failure(session_factory):
    store = TimingStore(session_factory, atomic=True)
    branch = await store.create_branch("Atomic Branch")
    view = BranchTimingService.build_empty_view(branch.id, branch.name)
    await store.replace_timings(branch.id, BranchTimingService.expand_view(view))

    async def failing_insert(session, rows):
        raise TimingInsertError("Failed to save timings: insert rejected")

    store._insert_rows = failing_insert
    with pytest.raises(TimingInsertError) as exc_info:
        await store.replace_timings(branch.id, BranchTimingService.expand_view(view))

    assert exc_info.value.phase == "insert"
    assert len(await store.fetch_timings(branch.id)) == 7


async def test_add_branch_seeds_empty_view(store):
    page = BranchTimingPage(store)
    await page.load_branches()

    assert await page.add_branch("   ") is None
    branch = await page.add_branch(" Harbour Branch ", "Dock 4")

    assert branch.name == "Harbour Branch"
    assert page.branches[0].id == branch.id
    assert page.active_branch_id == branch.id
    assert page.active_value.weekly == BranchTimingService.build_default_weekly()
    assert not page.dirty


async def test_save_without_active_branch_is_noop(store):
    page = BranchTimingPage(store)
    assert await page.save() is False
    assert page.editor() is None


async def test_late_load_still_written_to_cache(store):
    page = await _page_with_branch(store)
    other = await store.create_branch("Other Branch")
    await store.replace_timings(other.id, [
        TimingRowBase(branch_id=other.id, day_of_week="Monday", is_closed=True),
    ])

    await page.load_timings(other.id, "Other Branch")

    assert page.active_branch_id != other.id
    assert page.cache.get(other.id).weekly[0].is_closed
