import asyncio

import pytest

from conftest import make_document
from services.store_index_sync.SyncScheduler import SyncScheduler
from services.store_index_sync.SyncService import SyncService
from shared.models.errors import DocumentNotFoundError, SearchIndexError, StoreError


@pytest.fixture
def sync_service(helper_config, store_client, index_client) -> SyncService:
    return SyncService(helper_config=helper_config, store_client=store_client, index_client=index_client)


async def test_sync_all_converges_index_on_store(sync_service, store_client, index_client):
    for i in range(3):
        await store_client.do_save(make_document(f"d{i}"))

    report = await sync_service.do_sync_all()

    assert report.scope == "all"
    assert (report.total, report.succeeded, report.failed) == (3, 3, 0)
    assert report.finished_at is not None
    for doc_id, doc in store_client.documents.items():
        assert index_client.entries[doc_id] == doc.to_index_source()


async def test_sync_all_is_idempotent(sync_service, store_client, index_client):
    await store_client.do_save(make_document("d1"))
    await sync_service.do_sync_all()
    first = dict(index_client.entries)

    await sync_service.do_sync_all()

    assert index_client.entries == first


async def test_one_failing_document_does_not_abort_sweep(sync_service, store_client, index_client):
    for i in range(10):
        await store_client.do_save(make_document(f"d{i}"))
    index_client.fail_ids = {"d4"}

    report = await sync_service.do_sync_all()

    assert report.succeeded == 9
    assert report.failed == 1
    assert report.failed_ids == ["d4"]
    assert len(index_client.entries) == 9
    assert "d4" not in index_client.entries


async def test_sync_category_only_touches_that_category(sync_service, store_client, index_client):
    await store_client.do_save(make_document("n1", category="news"))
    await store_client.do_save(make_document("n2", category="news"))
    await store_client.do_save(make_document("s1", category="sports"))

    report = await sync_service.do_sync_category("news")

    assert report.scope == "category:news"
    assert report.succeeded == 2
    assert set(index_client.entries) == {"n1", "n2"}


async def test_store_failure_aborts_sweep(sync_service, store_client, index_client):
    await store_client.do_save(make_document("d1"))
    store_client.fail_reads = True

    with pytest.raises(StoreError):
        await sync_service.do_sync_all()
    assert index_client.index_calls == []


async def test_rebuild_drops_stale_entries(sync_service, store_client, index_client):
    index_client.entries["orphan"] = {"id": "orphan"}
    await store_client.do_save(make_document("d1"))

    report = await sync_service.do_rebuild_all()

    assert report.scope == "rebuild"
    assert index_client.deleted_index == 1
    assert index_client.created_index == 1
    assert set(index_client.entries) == {"d1"}


async def test_sync_one_propagates_index_failure(sync_service, index_client):
    index_client.fail_ids = {"d1"}
    with pytest.raises(SearchIndexError):
        await sync_service.do_sync_one(make_document("d1"))


async def test_sync_by_id(sync_service, store_client, index_client):
    await store_client.do_save(make_document("d1"))
    await sync_service.do_sync_by_id("d1")
    assert "d1" in index_client.entries

    with pytest.raises(DocumentNotFoundError):
        await sync_service.do_sync_by_id("missing")


async def test_delete_one_is_idempotent(sync_service, index_client):
    await sync_service.do_sync_one(make_document("d1"))
    await sync_service.do_delete_one("d1")
    await sync_service.do_delete_one("d1")
    assert index_client.entries == {}


async def test_empty_store_gives_empty_report(sync_service):
    report = await sync_service.do_sync_all()
    assert (report.total, report.succeeded, report.failed) == (0, 0, 0)


async def test_concurrency_comes_from_config(monkeypatch, helper_config, store_client, index_client):
    monkeypatch.setenv("SYNC_CONCURRENCY", "2")
    service = SyncService(helper_config=helper_config, store_client=store_client, index_client=index_client)
    assert service._concurrency == 2


async def test_scheduler_run_once_swallows_backend_failure(helper_config, sync_service, store_client):
    store_client.fail_reads = True
    scheduler = SyncScheduler(helper_config=helper_config, sync_service=sync_service)
    await scheduler.run_once()


async def test_scheduler_disabled_does_not_start(monkeypatch, helper_config, sync_service):
    monkeypatch.setenv("SYNC_ENABLED", "false")
    scheduler = SyncScheduler(helper_config=helper_config, sync_service=sync_service)
    scheduler.start()
    assert not scheduler.is_running()
    await scheduler.stop()


async def test_scheduler_start_and_stop(monkeypatch, helper_config, sync_service, store_client, index_client):
    monkeypatch.setenv("SYNC_ON_STARTUP", "true")
    monkeypatch.setenv("SYNC_INTERVAL_SECONDS", "3600")
    await store_client.do_save(make_document("d1"))
    scheduler = SyncScheduler(helper_config=helper_config, sync_service=sync_service)

    scheduler.start()
    assert scheduler.is_running()
    await _wait_until(lambda: "d1" in index_client.entries)
    await scheduler.stop()

    assert not scheduler.is_running()


async def test_scheduler_keeps_ticking_after_unexpected_error(monkeypatch, helper_config, sync_service, store_client, index_client):
    monkeypatch.setenv("SYNC_ON_STARTUP", "true")
    monkeypatch.setenv("SYNC_INTERVAL_SECONDS", "0.01")
    await store_client.do_save(make_document("d1"))
    find_all = store_client.do_find_all
    calls = []

    async def flaky_find_all():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("driver bug")
        return await find_all()

    monkeypatch.setattr(store_client, "do_find_all", flaky_find_all)
    scheduler = SyncScheduler(helper_config=helper_config, sync_service=sync_service)

    scheduler.start()
    await _wait_until(lambda: "d1" in index_client.entries)

    assert len(calls) >= 2
    assert scheduler.is_running()
    await scheduler.stop()
    assert not scheduler.is_running()


async def _wait_until(condition, timeout: float = 2.0) -> None:
    async def poll():
        while not condition():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)
