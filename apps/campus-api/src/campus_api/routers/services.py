from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from geo_engine.models import GeoPoint
from shared.security import validate_search_input

from campus_api.dependencies import get_directory_service
from campus_api.errors import ApiError, InvalidIdentifierError, ServiceNotFoundError
from campus_api.repositories.service_store import ServiceFilter
from campus_api.response import success_response
from campus_api.schemas.service import NearbyServiceItem, ServiceItem
from campus_api.services.directory_service import DirectoryService

router = APIRouter(prefix="/v1/services", tags=["services"])


def _build_filter(category: str | None, search: str | None, open_only: bool) -> ServiceFilter:
    if search is not None and not validate_search_input(search):
        raise ApiError("VALIDATION_ERROR", "search must be at most 100 printable characters", 422)
    return ServiceFilter(category=category or None, search=search or None, open_only=open_only)


@router.get("")
async def list_services(
    category: str | None = None,
    search: str | None = None,
    open_only: bool = False,
    service: DirectoryService = Depends(get_directory_service),
) -> dict:
    records = await service.list_services(_build_filter(category, search, open_only))
    data = [ServiceItem.from_record(record).model_dump(mode="json") for record in records]
    return success_response(data, meta={"count": len(data)})


@router.get("/nearby")
async def nearby_services(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_m: float = Query(default=1000.0, ge=0, le=50000),
    category: str | None = None,
    open_only: bool = False,
    service: DirectoryService = Depends(get_directory_service),
) -> dict:
    matches = await service.nearby(
        GeoPoint(lat=lat, lng=lng),
        radius_m,
        _build_filter(category, None, open_only),
    )
    data = [
        NearbyServiceItem(
            **ServiceItem.from_record(record).model_dump(),
            distance_meters=round(distance, 1),
        ).model_dump(mode="json")
        for record, distance in matches
    ]
    return success_response(data, meta={"count": len(data), "radius_m": radius_m})


@router.get("/{service_id}")
async def get_service(
    service_id: str,
    service: DirectoryService = Depends(get_directory_service),
) -> dict:
    try:
        result = await service.get_service(service_id)
    except InvalidIdentifierError as exc:
        raise ApiError("INVALID_IDENTIFIER", "service id is not well-formed", 400) from exc
    except ServiceNotFoundError as exc:
        raise ApiError("NOT_FOUND", "Service not found", 404) from exc
    return success_response(
        ServiceItem.from_record(result.record).model_dump(mode="json"),
        meta={"sync": result.outcome.value},
    )
