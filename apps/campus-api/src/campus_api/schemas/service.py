from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from campus_api.repositories.service_store import ServiceRecord


class ServiceLocation(BaseModel):
    lat: float
    lng: float


class ServiceItem(BaseModel):
    id: str
    name: str
    category: str
    description: str
    address: str
    location: ServiceLocation
    external_ref: str | None
    is_open: bool
    status_last_checked: datetime | None
    rating: float

    @classmethod
    def from_record(cls, record: ServiceRecord) -> "ServiceItem":
        return cls(
            id=record.id,
            name=record.name,
            category=record.category,
            description=record.description,
            address=record.address,
            location=ServiceLocation(lat=record.lat, lng=record.lng),
            external_ref=record.external_ref,
            is_open=record.is_open,
            status_last_checked=record.status_last_checked,
            rating=record.rating,
        )


class NearbyServiceItem(ServiceItem):
    distance_meters: float
