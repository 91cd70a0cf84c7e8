"""Tests for ApplicationService guards and store interaction."""
import pytest

from apptrack.cache import ApplicationCache
from apptrack.errors import (
    InvalidIdentifier,
    InvalidPath,
    NotFound,
    RateLimited,
    StoreUnavailable,
    ValidationFailed,
)
from apptrack.rate_limit import RateLimiter
from apptrack.security import SecurityLog
from apptrack.service import ApplicationService
from apptrack.stores import InMemoryStore
from apptrack.tagging import get_tag
from tests.factories import NOW, make_app

PATH = "applications/user-1"


def _existing():
    return {PATH: {"rec-1": {
        "company": "Acme", "role": "Engineer", "dateApplied": "2024-06-01",
        "status": "Applied", "visaSponsorship": False, "timestamp": 1717232400000,
    }}}


@pytest.fixture
def store():
    return InMemoryStore(_existing())


@pytest.fixture
def cache(clock):
    cache = ApplicationCache(clock=clock)
    cache.save([make_app()])
    return cache


@pytest.fixture
def security_log():
    return SecurityLog()


@pytest.fixture
def service(store, cache, clock, security_log):
    return ApplicationService(
        store, "user-1",
        cache=cache,
        limiter=RateLimiter(max_requests=2, window_seconds=1.0, clock=clock),
        security_log=security_log,
        clock=lambda: NOW,
    )


def test_path_is_built_from_user_id(service):
    assert service.path == PATH


def test_bad_user_id_is_rejected(store):
    with pytest.raises(InvalidPath):
        ApplicationService(store, "../other-user")


@pytest.mark.asyncio
async def test_add_writes_then_invalidates_cache(service, store, cache):
    app = await service.add_application("  Globex  ", "Data Engineer", "2024-06-10", "Applied", True,
                                        tags=[get_tag("tech")])
    assert app.id
    assert app.company == "Globex"
    assert app.created_at == NOW
    assert store.calls == [("create", PATH)]
    assert cache.load() is None

    stored = store.snapshot(PATH)
    [created] = [a for a in stored if a.id == app.id]
    assert created.visa_sponsorship is True
    assert created.tags == [get_tag("tech")]


@pytest.mark.asyncio
async def test_invalid_input_never_reaches_store(service, store, cache, security_log):
    with pytest.raises(ValidationFailed) as info:
        await service.add_application("A", "Engineer", "2030-01-01", "Hired", False)
    assert [e.field for e in info.value.errors] == ["company", "date", "status"]
    assert store.calls == []
    assert cache.load() is not None
    assert security_log.counts() == {"validation_failed": 1}


@pytest.mark.asyncio
async def test_rate_limit_fires_before_store(service, store, security_log):
    await service.add_application("Globex", "Engineer", "2024-06-10", "Applied", False)
    await service.add_application("Initech", "Engineer", "2024-06-10", "Applied", False)
    with pytest.raises(RateLimited) as info:
        await service.add_application("Umbrella", "Engineer", "2024-06-10", "Applied", False)
    assert info.value.operation == "add-application"
    assert len(store.calls) == 2
    assert security_log.counts()["rate_limited"] == 1


@pytest.mark.asyncio
async def test_rate_limit_recovers_after_window(service, clock):
    await service.add_application("Globex", "Engineer", "2024-06-10", "Applied", False)
    await service.add_application("Initech", "Engineer", "2024-06-10", "Applied", False)
    clock.advance(1.0)
    await service.add_application("Umbrella", "Engineer", "2024-06-10", "Applied", False)


@pytest.mark.asyncio
async def test_update_stamps_updated_at(service, store, cache):
    await service.update_application("rec-1", {"status": "Phone Screen"}, original_status="Applied")
    assert store.calls == [("update", PATH)]
    [app] = store.snapshot(PATH)
    assert app.status == "Phone Screen"
    assert app.updated_at == NOW
    assert app.company == "Acme"
    assert cache.load() is None


@pytest.mark.asyncio
async def test_update_rejects_bad_fields(service, store):
    with pytest.raises(ValidationFailed) as info:
        await service.update_application("rec-1", {"status": "Hired", "id": "other"})
    assert sorted(e.field for e in info.value.errors) == ["id", "status"]
    assert store.calls == []


@pytest.mark.asyncio
async def test_update_rejects_bad_identifier(service, store):
    with pytest.raises(InvalidIdentifier):
        await service.update_application("../rec-1", {"status": "Offer"})
    assert store.calls == []


@pytest.mark.asyncio
async def test_update_of_missing_record(service, cache):
    with pytest.raises(NotFound):
        await service.update_application("ghost", {"status": "Offer"})
    assert cache.load() is not None


@pytest.mark.asyncio
async def test_delete_reads_then_deletes(service, store, cache):
    deleted = await service.delete_application("rec-1")
    assert deleted.id == "rec-1"
    assert deleted.company == "Acme"
    assert store.calls == [("read_one", PATH), ("delete", PATH)]
    assert store.snapshot(PATH) == []
    assert cache.load() is None


@pytest.mark.asyncio
async def test_delete_missing_record(service, store, cache):
    with pytest.raises(NotFound):
        await service.delete_application("ghost")
    assert store.calls == [("read_one", PATH)]
    assert cache.load() is not None


@pytest.mark.asyncio
async def test_delete_rejects_bad_identifier(service, store, security_log):
    with pytest.raises(InvalidIdentifier):
        await service.delete_application("a" * 1000)
    assert store.calls == []
    assert security_log.counts() == {"invalid_id": 1}


@pytest.mark.asyncio
async def test_reads_are_retried(service, store):
    store.fail_next(times=2)
    app = await service.get_application("rec-1")
    assert app.company == "Acme"
    assert store.calls == [("read_one", PATH)] * 3


@pytest.mark.asyncio
async def test_collaborator_failures_become_store_unavailable(service, store, cache):
    store.fail_next(RuntimeError("socket closed on applications/user-1"))
    with pytest.raises(StoreUnavailable) as info:
        await service.add_application("Globex", "Engineer", "2024-06-10", "Applied", False)
    assert "socket" not in str(info.value)
    assert isinstance(info.value.__cause__, RuntimeError)
    assert cache.load() is not None


@pytest.mark.asyncio
async def test_get_missing_application(service):
    assert await service.get_application("nope") is None


@pytest.mark.asyncio
async def test_import_skips_duplicates_and_invalid(service, store, cache):
    incoming = [
        make_app(company="acme ", role="ENGINEER", date_applied="2024-06-01"),
        make_app(company="Globex", role="Engineer", date_applied="2024-06-02"),
        make_app(company="Globex", role="Engineer", date_applied="2024-06-02"),
        make_app(company="Initech", role="Analyst", date_applied="2024-06-03", status="Offer"),
        make_app(company="!", role="Analyst", date_applied="2024-06-03"),
    ]
    result = await service.import_applications(incoming)
    assert (result.added, result.skipped, result.errors) == (2, 2, 1)
    assert store.calls == [("read_all", PATH), ("bulk_create", PATH)]
    assert sorted(a.company for a in store.snapshot(PATH)) == ["Acme", "Globex", "Initech"]
    assert cache.load() is None


@pytest.mark.asyncio
async def test_import_of_only_duplicates_writes_nothing(service, store, cache):
    result = await service.import_applications([make_app(company="Acme", role="Engineer")])
    assert (result.added, result.skipped) == (0, 1)
    assert store.calls == [("read_all", PATH)]
    assert cache.load() is not None


@pytest.mark.asyncio
async def test_subscribe_delivers_current_snapshot(service):
    subscription = await service.subscribe()
    first = await subscription.__anext__()
    assert [a.id for a in first] == ["rec-1"]
    subscription.close()


@pytest.mark.asyncio
async def test_visa_flag_strings_are_parsed(service):
    app = await service.add_application("Globex", "Engineer", "2024-06-10", "Applied", "true")
    assert (await service.get_application(app.id)).visa_sponsorship is True

    await service.update_application(app.id, {"visaSponsorship": "false"})
    assert (await service.get_application(app.id)).visa_sponsorship is False
