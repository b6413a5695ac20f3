from __future__ import annotations

from typing import Protocol

from geo_engine.geofence import within_radius
from geo_engine.models import GeoPoint

from campus_api.repositories.service_store import ServiceFilter, ServiceRecord
from campus_api.services.freshness import StatusSynchronizer, SyncResult


class ServiceReader(Protocol):
    async def get_by_id(self, service_id: str) -> ServiceRecord: ...

    async def list_services(self, query: ServiceFilter | None = None) -> list[ServiceRecord]: ...


class DirectoryService:
    def __init__(self, store: ServiceReader, synchronizer: StatusSynchronizer) -> None:
        self._store = store
        self._synchronizer = synchronizer

    async def list_services(self, query: ServiceFilter | None = None) -> list[ServiceRecord]:
        return await self._store.list_services(query)

    async def get_service(self, service_id: str) -> SyncResult:
        record = await self._store.get_by_id(service_id)
        return await self._synchronizer.synchronize(record)

    async def nearby(
        self,
        origin: GeoPoint,
        radius_meters: float,
        query: ServiceFilter | None = None,
    ) -> list[tuple[ServiceRecord, float]]:
        records = await self._store.list_services(query)
        return within_radius(origin, records, radius_meters, locate=lambda record: record.location)
