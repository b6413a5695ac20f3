"""Open/closed status synchronization for directory records.

A read of a single record may refresh its ``is_open`` flag from the place-data
source. The TTL bounds how often a record is sent upstream; it is not a
consistency guarantee. Only a defined observation renews
``status_last_checked``, so a failed or indeterminate refresh is retried on the
next read instead of waiting out the TTL.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Protocol

from devkit.timezone import now_utc
from sqlalchemy.exc import SQLAlchemyError

from campus_api.errors import DirectoryError, ExternalSourceUnavailableError
from campus_api.repositories.service_store import ServiceRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60
DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
SYNC_FIELDS = ("is_open", "status_last_checked")


class SyncOutcome(str, Enum):
    NOT_SYNCHRONIZABLE = "not_synchronizable"
    FRESH = "fresh"
    REFRESHED = "refreshed"
    INDETERMINATE = "indeterminate"
    FAILED = "failed"
    PERSIST_FAILED = "persist_failed"


@dataclass(frozen=True)
class SyncResult:
    record: ServiceRecord
    outcome: SyncOutcome


class StatusSource(Protocol):
    async def fetch_open_status(self, external_ref: str) -> bool | None: ...


class ServiceWriter(Protocol):
    async def save(self, record: ServiceRecord, fields: Iterable[str] | None = None) -> ServiceRecord: ...


class StatusSynchronizer:
    def __init__(
        self,
        store: ServiceWriter,
        source: StatusSource,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_utc,
        observer: Callable[[SyncOutcome], None] | None = None,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._store = store
        self._source = source
        self._ttl = timedelta(seconds=ttl_seconds)
        self._fetch_timeout_seconds = fetch_timeout_seconds
        self._clock = clock
        self._observer = observer

    def is_fresh(self, record: ServiceRecord, now: datetime) -> bool:
        checked = record.status_last_checked
        return checked is not None and now - checked < self._ttl

    async def synchronize(self, record: ServiceRecord) -> SyncResult:
        result = await self._synchronize(record)
        if self._observer is not None:
            self._observer(result.outcome)
        return result

    async def _synchronize(self, record: ServiceRecord) -> SyncResult:
        if not record.external_ref:
            return SyncResult(record, SyncOutcome.NOT_SYNCHRONIZABLE)
        if self.is_fresh(record, self._clock()):
            return SyncResult(record, SyncOutcome.FRESH)

        try:
            is_open = await asyncio.wait_for(
                self._source.fetch_open_status(record.external_ref),
                timeout=self._fetch_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "status_sync_failed",
                extra={"service_id": record.id, "external_ref": record.external_ref, "error": "timeout"},
            )
            return SyncResult(record, SyncOutcome.FAILED)
        except ExternalSourceUnavailableError as exc:
            logger.warning(
                "status_sync_failed",
                extra={"service_id": record.id, "external_ref": record.external_ref, "error": str(exc)},
            )
            return SyncResult(record, SyncOutcome.FAILED)

        if is_open is None:
            logger.info(
                "status_sync_indeterminate",
                extra={"service_id": record.id, "external_ref": record.external_ref},
            )
            return SyncResult(record, SyncOutcome.INDETERMINATE)

        refreshed = replace(record, is_open=is_open, status_last_checked=self._clock())
        try:
            refreshed = await self._store.save(refreshed, fields=SYNC_FIELDS)
        except (DirectoryError, SQLAlchemyError):
            logger.exception("status_sync_persist_failed", extra={"service_id": record.id})
            return SyncResult(refreshed, SyncOutcome.PERSIST_FAILED)

        logger.info(
            "status_sync_refreshed",
            extra={"service_id": record.id, "service_name": record.name, "is_open": is_open},
        )
        return SyncResult(refreshed, SyncOutcome.REFRESHED)
