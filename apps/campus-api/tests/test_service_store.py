from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from campus_api.errors import InvalidIdentifierError, ServiceNotFoundError
from campus_api.repositories.service_store import ServiceFilter, ServiceRecord, ServiceStore
from campus_api.seed import CAMPUS_SERVICES, seed_records, service_id_for


def build_store() -> ServiceStore:
    return ServiceStore(seed=seed_records())


@pytest.mark.asyncio
async def test_list_without_filter_returns_all_sorted_by_name() -> None:
    records = await build_store().list_services()

    names = [record.name for record in records]
    assert len(records) == len(CAMPUS_SERVICES)
    assert names == sorted(names, key=str.lower)


@pytest.mark.asyncio
async def test_list_orders_names_ignoring_case() -> None:
    canteen = seed_records()[0]
    records = [
        replace(canteen, id=service_id_for(name), name=name)
        for name in ("cherry Shop", "Banana Cart", "apple Stall")
    ]

    listed = await ServiceStore(seed=records).list_services()

    assert [record.name for record in listed] == ["apple Stall", "Banana Cart", "cherry Shop"]


@pytest.mark.asyncio
async def test_list_filters_by_category() -> None:
    records = await build_store().list_services(ServiceFilter(category="Food"))

    assert {record.name for record in records} == {"Campus Canteen", "Turram's : Flames and Works"}


@pytest.mark.asyncio
async def test_all_category_disables_filter() -> None:
    store = build_store()

    assert len(await store.list_services(ServiceFilter(category="All"))) == len(CAMPUS_SERVICES)


@pytest.mark.asyncio
async def test_search_matches_name_or_description_case_insensitive() -> None:
    store = build_store()

    by_name = await store.list_services(ServiceFilter(search="xerox"))
    by_description = await store.list_services(ServiceFilter(search="PHARMACY"))

    assert [record.name for record in by_name] == ["Maa Xerox"]
    assert [record.name for record in by_description] == ["Infectious Diseases & Beleghata General Hospital"]


@pytest.mark.asyncio
async def test_open_only_filter() -> None:
    store = build_store()
    canteen = await store.get_by_id(service_id_for("Campus Canteen"))
    await store.save(replace(canteen, is_open=True), fields=("is_open",))

    records = await store.list_services(ServiceFilter(open_only=True))

    assert [record.name for record in records] == ["Campus Canteen"]


@pytest.mark.asyncio
async def test_get_by_id_rejects_malformed_identifier() -> None:
    with pytest.raises(InvalidIdentifierError):
        await build_store().get_by_id("not-a-uuid")


@pytest.mark.asyncio
async def test_get_by_id_raises_not_found() -> None:
    with pytest.raises(ServiceNotFoundError):
        await build_store().get_by_id("00000000-0000-0000-0000-000000000000")


@pytest.mark.asyncio
async def test_partial_save_only_writes_named_fields() -> None:
    store = build_store()
    service_id = service_id_for("Maa Xerox")
    original = await store.get_by_id(service_id)
    checked = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    changed = replace(original, name="Renamed", is_open=True, status_last_checked=checked)
    saved = await store.save(changed, fields=("is_open", "status_last_checked"))

    assert saved.name == "Maa Xerox"
    assert saved.is_open is True
    assert saved.status_last_checked == checked
    assert await store.get_by_id(service_id) == saved


@pytest.mark.asyncio
async def test_save_missing_record_raises_not_found() -> None:
    record = ServiceRecord(
        id="00000000-0000-0000-0000-000000000001",
        name="Ghost",
        category="Food",
        lat=22.56,
        lng=88.39,
    )
    with pytest.raises(ServiceNotFoundError):
        await build_store().save(record)


@pytest.mark.asyncio
async def test_save_rejects_unknown_field() -> None:
    store = build_store()
    record = await store.get_by_id(service_id_for("Campus Canteen"))

    with pytest.raises(ValueError):
        await store.save(record, fields=("id",))


@pytest.mark.asyncio
async def test_missing_external_ref_listing() -> None:
    store = build_store()
    canteen = await store.get_by_id(service_id_for("Campus Canteen"))
    await store.save(replace(canteen, external_ref="ChIJcanteen"), fields=("external_ref",))

    missing = await store.list_missing_external_ref()

    assert len(missing) == len(CAMPUS_SERVICES) - 1
    assert all(record.name != "Campus Canteen" for record in missing)


def test_seed_ids_are_stable() -> None:
    assert service_id_for("Campus Canteen") == service_id_for("Campus Canteen")
    assert seed_records()[0].id == seed_records()[0].id
    assert len({record.id for record in seed_records()}) == len(CAMPUS_SERVICES)
