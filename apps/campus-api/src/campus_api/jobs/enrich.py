"""Link directory records to Google place ids.

Every record without an ``external_ref`` is looked up by name with a location
bias around its stored coordinates, so a common name does not resolve to a
branch elsewhere in the city. Run with ``python -m campus_api.jobs.enrich``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
import logging
import os
from typing import Protocol

from devkit.observability import configure_logging
from geo_engine.models import GeoPoint
from sqlalchemy.exc import SQLAlchemyError

from campus_api.clients.places_client import PlaceCandidate, PlacesClient
from campus_api.config import CampusSettings, load_campus_settings
from campus_api.db import build_database
from campus_api.errors import DirectoryError, ExternalSourceUnavailableError
from campus_api.repositories.service_store import ServiceStore
from campus_api.seed import seed_records

logger = logging.getLogger(__name__)


class PlaceFinder(Protocol):
    async def find_place(
        self,
        name: str,
        near: GeoPoint,
        radius_meters: int = 500,
    ) -> PlaceCandidate | None: ...


@dataclass
class EnrichmentReport:
    checked: int = 0
    linked: int = 0
    missed: int = 0
    failed: int = 0


async def enrich_missing_place_ids(
    store: ServiceStore,
    places: PlaceFinder,
    *,
    radius_meters: int = 500,
    pause_seconds: float = 0.2,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> EnrichmentReport:
    report = EnrichmentReport()
    pending = await store.list_missing_external_ref()
    logger.info("enrichment_started", extra={"pending": len(pending)})

    for index, record in enumerate(pending):
        if index and pause_seconds > 0:
            await sleep(pause_seconds)
        report.checked += 1
        try:
            candidate = await places.find_place(record.name, record.location, radius_meters=radius_meters)
        except ExternalSourceUnavailableError as exc:
            report.failed += 1
            logger.warning("enrichment_lookup_failed", extra={"service_id": record.id, "error": str(exc)})
            continue

        if candidate is None:
            report.missed += 1
            logger.warning("enrichment_no_match", extra={"service_id": record.id, "service_name": record.name})
            continue

        linked = replace(
            record,
            external_ref=candidate.place_id,
            address=candidate.formatted_address or record.address,
        )
        try:
            await store.save(linked, fields=("external_ref", "address"))
        except (DirectoryError, SQLAlchemyError):
            report.failed += 1
            logger.exception("enrichment_save_failed", extra={"service_id": record.id})
            continue
        report.linked += 1
        logger.info(
            "enrichment_linked",
            extra={"service_id": record.id, "service_name": record.name, "external_ref": candidate.place_id},
        )

    logger.info(
        "enrichment_completed",
        extra={
            "checked": report.checked,
            "linked": report.linked,
            "missed": report.missed,
            "failed": report.failed,
        },
    )
    return report


async def run(settings: CampusSettings) -> EnrichmentReport:
    if not settings.GOOGLE_MAPS_API_KEY:
        raise RuntimeError("missing required environment variable: GOOGLE_MAPS_API_KEY")
    db = build_database(settings.DATABASE_URL)
    store = ServiceStore(db=db, seed=seed_records())
    places = PlacesClient(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        base_url=settings.PLACES_BASE_URL,
        timeout_seconds=settings.STATUS_FETCH_TIMEOUT_SECONDS,
    )
    try:
        await store.ensure_ready()
        return await enrich_missing_place_ids(
            store,
            places,
            radius_meters=settings.ENRICH_RADIUS_METERS,
            pause_seconds=settings.ENRICH_PAUSE_SECONDS,
        )
    finally:
        if db is not None:
            await db.disconnect()


def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    asyncio.run(run(load_campus_settings()))


if __name__ == "__main__":
    main()
