"""Tests for the in-memory store and its subscriptions."""
import asyncio

import pytest

from apptrack.errors import NotFound, StoreUnavailable
from apptrack.stores import ApplicationStore, InMemoryStore

PATH = "applications/u1"


def test_store_implements_interface():
    assert isinstance(InMemoryStore(), ApplicationStore)


@pytest.mark.asyncio
async def test_create_read_update_delete():
    store = InMemoryStore()
    record_id = await store.create(PATH, {"company": "Acme", "status": "Applied"})
    assert (await store.read_one(PATH, record_id))["company"] == "Acme"

    await store.update(PATH, record_id, {"status": "Offer"})
    assert (await store.read_all(PATH))[record_id]["status"] == "Offer"

    await store.delete(PATH, record_id)
    assert await store.read_one(PATH, record_id) is None
    await store.delete(PATH, record_id)


@pytest.mark.asyncio
async def test_update_missing_raises():
    with pytest.raises(NotFound):
        await InMemoryStore().update(PATH, "missing", {"status": "Offer"})


@pytest.mark.asyncio
async def test_returned_records_are_copies():
    store = InMemoryStore()
    record_id = await store.create(PATH, {"company": "Acme"})
    (await store.read_one(PATH, record_id))["company"] = "Changed"
    assert (await store.read_one(PATH, record_id))["company"] == "Acme"


@pytest.mark.asyncio
async def test_paths_are_isolated():
    store = InMemoryStore()
    await store.create(PATH, {"company": "Acme"})
    assert await store.read_all("applications/u2") == {}


@pytest.mark.asyncio
async def test_subscription_emits_on_every_write():
    store = InMemoryStore()
    sub = await store.subscribe(PATH)
    assert await sub.__anext__() == []

    await store.bulk_create(PATH, [{"company": "Acme"}, {"company": "Globex"}])
    snapshot = await sub.__anext__()
    assert sorted(a.company for a in snapshot) == ["Acme", "Globex"]

    sub.close()
    await store.create(PATH, {"company": "Initech"})
    with pytest.raises(StopAsyncIteration):
        await sub.__anext__()


@pytest.mark.asyncio
async def test_close_ends_async_iteration():
    store = InMemoryStore()
    sub = await store.subscribe(PATH)
    seen = []

    async def consume():
        async for snapshot in sub:
            seen.append(len(snapshot))

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    sub.close()
    await asyncio.wait_for(task, timeout=1)
    assert seen == [0]


@pytest.mark.asyncio
async def test_fail_next():
    store = InMemoryStore()
    store.fail_next(times=2)
    for _ in range(2):
        with pytest.raises(StoreUnavailable):
            await store.read_all(PATH)
    assert await store.read_all(PATH) == {}
    assert store.calls == [("read_all", PATH)] * 3
