from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from campus_api.app import create_app
from campus_api.config import CampusSettings
from campus_api.dependencies import build_container
from campus_api.errors import ExternalSourceUnavailableError
from campus_api.repositories.service_store import ServiceStore
from campus_api.seed import seed_records, service_id_for

CANTEEN_ID = service_id_for("Campus Canteen")
XEROX_ID = service_id_for("Maa Xerox")


class StubSource:
    def __init__(self, result: bool | None = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[str] = []

    async def fetch_open_status(self, external_ref: str) -> bool | None:
        self.calls.append(external_ref)
        if self.error is not None:
            raise self.error
        return self.result


def build_client(source: StubSource | None = None) -> tuple[TestClient, StubSource]:
    source = source or StubSource()
    records = [
        replace(record, external_ref="ChIJ-canteen") if record.id == CANTEEN_ID else record
        for record in seed_records()
    ]
    container = build_container(
        CampusSettings(DATABASE_URL=None, GOOGLE_MAPS_API_KEY=None),
        source=source,
        services=ServiceStore(seed=records),
    )
    return TestClient(create_app(container)), source


def test_health_endpoint_response_shape() -> None:
    client, _ = build_client()
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"status": "ok"}, "meta": {}}


def test_ready_endpoint_response_shape() -> None:
    client, _ = build_client()
    response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ready"


class DownDatabase:
    async def is_healthy(self) -> bool:
        return False

    async def disconnect(self) -> None:
        return None


def test_ready_endpoint_reports_unavailable_database() -> None:
    container = build_container(CampusSettings(DATABASE_URL=None, GOOGLE_MAPS_API_KEY=None))
    container.db = DownDatabase()
    response = TestClient(create_app(container)).get("/readyz")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "NOT_READY"


def test_list_services_is_sorted_and_never_syncs() -> None:
    client, source = build_client()
    response = client.get("/v1/services")
    body = response.json()

    names = [item["name"] for item in body["data"]]
    assert response.status_code == 200
    assert body["success"] is True
    assert body["meta"]["count"] == len(names)
    assert names == sorted(names, key=str.lower)
    assert source.calls == []


def test_list_services_filters() -> None:
    client, _ = build_client()

    food = client.get("/v1/services", params={"category": "Food"}).json()["data"]
    everything = client.get("/v1/services", params={"category": "All"}).json()["data"]
    search = client.get("/v1/services", params={"search": "xerox"}).json()["data"]
    open_only = client.get("/v1/services", params={"open_only": "true"}).json()["data"]

    assert {item["category"] for item in food} == {"Food"}
    assert len(everything) == len(seed_records())
    assert [item["id"] for item in search] == [XEROX_ID]
    assert open_only == []


def test_list_services_finds_name_with_apostrophe() -> None:
    client, _ = build_client()
    response = client.get("/v1/services", params={"search": "Turram's"})
    body = response.json()

    assert response.status_code == 200
    assert [item["name"] for item in body["data"]] == ["Turram's : Flames and Works"]


def test_list_services_rejects_overlong_search() -> None:
    client, _ = build_client()
    response = client.get("/v1/services", params={"search": "x" * 101})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_service_detail_refreshes_status() -> None:
    client, source = build_client(StubSource(result=True))
    response = client.get(f"/v1/services/{CANTEEN_ID}")
    body = response.json()

    assert response.status_code == 200
    assert body["data"]["id"] == CANTEEN_ID
    assert body["data"]["is_open"] is True
    assert body["data"]["status_last_checked"] is not None
    assert body["meta"]["sync"] == "refreshed"
    assert source.calls == ["ChIJ-canteen"]


def test_second_detail_read_is_served_fresh() -> None:
    client, source = build_client(StubSource(result=True))
    client.get(f"/v1/services/{CANTEEN_ID}")
    second = client.get(f"/v1/services/{CANTEEN_ID}").json()

    assert second["meta"]["sync"] == "fresh"
    assert second["data"]["is_open"] is True
    assert source.calls == ["ChIJ-canteen"]


def test_detail_without_external_ref_is_not_synchronizable() -> None:
    client, source = build_client()
    body = client.get(f"/v1/services/{XEROX_ID}").json()

    assert body["meta"]["sync"] == "not_synchronizable"
    assert body["data"]["is_open"] is False
    assert source.calls == []


def test_source_outage_returns_stored_record() -> None:
    client, _ = build_client(StubSource(error=ExternalSourceUnavailableError("down")))
    response = client.get(f"/v1/services/{CANTEEN_ID}")
    body = response.json()

    assert response.status_code == 200
    assert body["data"]["is_open"] is False
    assert body["data"]["status_last_checked"] is None
    assert body["meta"]["sync"] == "failed"


def test_unknown_service_returns_not_found() -> None:
    client, _ = build_client()
    response = client.get("/v1/services/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": {"code": "NOT_FOUND", "message": "Service not found"}}


def test_malformed_service_id_returns_bad_request() -> None:
    client, _ = build_client()
    response = client.get("/v1/services/not-a-uuid")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_IDENTIFIER"


def test_nearby_services_sorted_by_distance() -> None:
    client, source = build_client()
    response = client.get(
        "/v1/services/nearby",
        params={"lat": 22.5576984, "lng": 88.3939082, "radius_m": 700},
    )
    body = response.json()

    distances = [item["distance_meters"] for item in body["data"]]
    assert response.status_code == 200
    assert body["data"][0]["id"] == CANTEEN_ID
    assert distances[0] == 0.0
    assert distances == sorted(distances)
    assert all(distance <= 700 for distance in distances)
    assert source.calls == []


def test_nearby_services_validates_coordinates() -> None:
    client, _ = build_client()
    response = client.get("/v1/services/nearby", params={"lat": 123, "lng": 88.39})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_metrics_expose_sync_outcomes() -> None:
    client, _ = build_client(StubSource(result=False))
    client.get(f"/v1/services/{CANTEEN_ID}")
    response = client.get("/metrics")

    assert response.status_code == 200
    assert 'campus_status_sync_total{outcome="refreshed"} 1.0' in response.text
    assert "campus_http_requests_total" in response.text


def test_trace_id_is_echoed() -> None:
    client, _ = build_client()
    response = client.get("/healthz", headers={"x-trace-id": "trace-123"})

    assert response.headers["x-trace-id"] == "trace-123"
