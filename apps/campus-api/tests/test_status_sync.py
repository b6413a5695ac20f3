from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import logging

import pytest

from campus_api.errors import ExternalSourceUnavailableError, ServiceNotFoundError
from campus_api.repositories.service_store import ServiceRecord, ServiceStore
from campus_api.services.directory_service import DirectoryService
from campus_api.services.freshness import StatusSynchronizer, SyncOutcome

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
SERVICE_ID = "3f1c8e52-6a62-4f7a-9d1d-0f8c55d0a001"


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeSource:
    def __init__(self, result: bool | None = True, error: Exception | None = None, delay: float = 0.0) -> None:
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def fetch_open_status(self, external_ref: str) -> bool | None:
        self.calls.append(external_ref)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class RecordingStore:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.saved: list[tuple[ServiceRecord, tuple[str, ...] | None]] = []

    async def save(self, record, fields=None):
        self.saved.append((record, tuple(fields) if fields is not None else None))
        if self.error is not None:
            raise self.error
        return record


def make_record(**overrides) -> ServiceRecord:
    values = {
        "id": SERVICE_ID,
        "name": "Campus Canteen",
        "category": "Food",
        "lat": 22.5576984,
        "lng": 88.3939082,
        "external_ref": "X1",
        "is_open": False,
        "status_last_checked": None,
    }
    values.update(overrides)
    return ServiceRecord(**values)


def build_synchronizer(store, source, *, now: datetime = NOW, timeout: float = 5.0, observer=None):
    return StatusSynchronizer(
        store,
        source,
        ttl_seconds=15 * 60,
        fetch_timeout_seconds=timeout,
        clock=FixedClock(now),
        observer=observer,
    )


@pytest.mark.asyncio
async def test_record_without_external_ref_is_never_fetched() -> None:
    store, source = RecordingStore(), FakeSource(result=True)
    record = make_record(external_ref=None, is_open=True, status_last_checked=NOW - timedelta(hours=3))

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.NOT_SYNCHRONIZABLE
    assert result.record == record
    assert source.calls == []
    assert store.saved == []


@pytest.mark.asyncio
async def test_empty_external_ref_counts_as_absent() -> None:
    source = FakeSource(result=True)
    result = await build_synchronizer(RecordingStore(), source).synchronize(make_record(external_ref=""))

    assert result.outcome is SyncOutcome.NOT_SYNCHRONIZABLE
    assert source.calls == []


@pytest.mark.asyncio
async def test_fresh_record_is_returned_without_fetch() -> None:
    store, source = RecordingStore(), FakeSource(result=False)
    record = make_record(external_ref="X2", is_open=True, status_last_checked=NOW - timedelta(minutes=5))

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.FRESH
    assert result.record == record
    assert source.calls == []
    assert store.saved == []


@pytest.mark.asyncio
async def test_record_one_second_inside_ttl_is_fresh() -> None:
    source = FakeSource(result=True)
    record = make_record(status_last_checked=NOW - timedelta(minutes=15) + timedelta(seconds=1))

    result = await build_synchronizer(RecordingStore(), source).synchronize(record)

    assert result.outcome is SyncOutcome.FRESH
    assert source.calls == []


@pytest.mark.asyncio
async def test_record_exactly_at_ttl_is_stale() -> None:
    store, source = RecordingStore(), FakeSource(result=True)
    record = make_record(status_last_checked=NOW - timedelta(minutes=15))

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.REFRESHED
    assert source.calls == ["X1"]


@pytest.mark.asyncio
async def test_stale_record_is_refreshed_and_persisted() -> None:
    store, source = RecordingStore(), FakeSource(result=True)
    record = make_record(external_ref="X1", is_open=False, status_last_checked=NOW - timedelta(minutes=20))

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.REFRESHED
    assert result.record.is_open is True
    assert result.record.status_last_checked == NOW
    assert source.calls == ["X1"]
    assert len(store.saved) == 1
    saved, fields = store.saved[0]
    assert saved.is_open is True
    assert saved.status_last_checked == NOW
    assert fields == ("is_open", "status_last_checked")


@pytest.mark.asyncio
async def test_closed_observation_also_renews_ttl() -> None:
    store, source = RecordingStore(), FakeSource(result=False)
    record = make_record(is_open=True, status_last_checked=None)

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.REFRESHED
    assert result.record.is_open is False
    assert result.record.status_last_checked == NOW
    assert len(store.saved) == 1


@pytest.mark.asyncio
async def test_timeout_leaves_record_untouched(caplog: pytest.LogCaptureFixture) -> None:
    store, source = RecordingStore(), FakeSource(result=True, delay=1.0)
    record = make_record(external_ref="X3", is_open=False, status_last_checked=None)

    with caplog.at_level(logging.WARNING, logger="campus_api.services.freshness"):
        result = await build_synchronizer(store, source, timeout=0.01).synchronize(record)

    assert result.outcome is SyncOutcome.FAILED
    assert result.record == record
    assert store.saved == []
    assert any(item.getMessage() == "status_sync_failed" for item in caplog.records)


@pytest.mark.asyncio
async def test_unavailable_source_leaves_record_untouched() -> None:
    store = RecordingStore()
    source = FakeSource(error=ExternalSourceUnavailableError("places api status OVER_QUERY_LIMIT"))
    checked = NOW - timedelta(hours=1)
    record = make_record(is_open=True, status_last_checked=checked)

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.FAILED
    assert result.record.is_open is True
    assert result.record.status_last_checked == checked
    assert store.saved == []


@pytest.mark.asyncio
async def test_indeterminate_status_leaves_record_untouched() -> None:
    store, source = RecordingStore(), FakeSource(result=None)
    checked = NOW - timedelta(hours=1)
    record = make_record(is_open=True, status_last_checked=checked)

    result = await build_synchronizer(store, source).synchronize(record)

    assert result.outcome is SyncOutcome.INDETERMINATE
    assert result.record == record
    assert store.saved == []


@pytest.mark.asyncio
async def test_failed_refresh_is_retried_on_next_read() -> None:
    store = RecordingStore()
    source = FakeSource(error=ExternalSourceUnavailableError("down"))
    synchronizer = build_synchronizer(store, source)
    record = make_record()

    await synchronizer.synchronize(record)
    await synchronizer.synchronize(record)

    assert source.calls == ["X1", "X1"]


@pytest.mark.asyncio
async def test_persist_failure_still_returns_observation() -> None:
    store = RecordingStore(error=ServiceNotFoundError(SERVICE_ID))
    source = FakeSource(result=True)

    result = await build_synchronizer(store, source).synchronize(make_record())

    assert result.outcome is SyncOutcome.PERSIST_FAILED
    assert result.record.is_open is True
    assert result.record.status_last_checked == NOW


@pytest.mark.asyncio
async def test_observer_receives_each_outcome() -> None:
    seen: list[SyncOutcome] = []
    synchronizer = build_synchronizer(RecordingStore(), FakeSource(result=True), observer=seen.append)

    await synchronizer.synchronize(make_record(external_ref=None))
    await synchronizer.synchronize(make_record(status_last_checked=NOW))
    await synchronizer.synchronize(make_record())

    assert seen == [SyncOutcome.NOT_SYNCHRONIZABLE, SyncOutcome.FRESH, SyncOutcome.REFRESHED]


def test_negative_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        StatusSynchronizer(RecordingStore(), FakeSource(), ttl_seconds=-1)


@pytest.mark.asyncio
async def test_back_to_back_reads_fetch_once() -> None:
    store = ServiceStore(seed=[make_record()])
    source = FakeSource(result=True)
    directory = DirectoryService(store, build_synchronizer(store, source))

    first = await directory.get_service(SERVICE_ID)
    second = await directory.get_service(SERVICE_ID)

    assert first.outcome is SyncOutcome.REFRESHED
    assert second.outcome is SyncOutcome.FRESH
    assert second.record.is_open is True
    assert source.calls == ["X1"]


@pytest.mark.asyncio
async def test_refresh_is_visible_in_store() -> None:
    store = ServiceStore(seed=[make_record(status_last_checked=NOW - timedelta(minutes=20))])
    directory = DirectoryService(store, build_synchronizer(store, FakeSource(result=True)))

    await directory.get_service(SERVICE_ID)
    stored = await store.get_by_id(SERVICE_ID)

    assert stored.is_open is True
    assert stored.status_last_checked == NOW
