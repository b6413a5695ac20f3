from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, fields as dataclass_fields, replace
from datetime import datetime
import logging
from uuid import UUID

from devkit.db import AsyncDatabaseManager, Base
from devkit.timezone import ensure_utc
from geo_engine.models import GeoPoint
from sqlalchemy import Boolean, DateTime, Float, String, Text, func, or_, select
from sqlalchemy.orm import Mapped, mapped_column

from campus_api.db import prepare_schema, table_args
from campus_api.errors import InvalidIdentifierError, ServiceNotFoundError

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class ServiceRecord:
    id: str
    name: str
    category: str
    lat: float
    lng: float
    description: str = ""
    address: str = ""
    external_ref: str | None = None
    is_open: bool = False
    status_last_checked: datetime | None = None
    rating: float = 0.0

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


MUTABLE_FIELDS = frozenset(item.name for item in dataclass_fields(ServiceRecord)) - {"id"}


@dataclass(frozen=True)
class ServiceFilter:
    category: str | None = None
    search: str | None = None
    open_only: bool = False

    def matches(self, record: ServiceRecord) -> bool:
        if self.category and self.category != ALL_CATEGORIES and record.category != self.category:
            return False
        if self.search:
            needle = self.search.lower().strip()
            if needle not in record.name.lower() and needle not in record.description.lower():
                return False
        if self.open_only and not record.is_open:
            return False
        return True


def normalize_service_id(service_id: str) -> str:
    try:
        return str(UUID(service_id))
    except (TypeError, ValueError) as exc:
        raise InvalidIdentifierError(f"malformed service id: {service_id!r}") from exc


class ServiceORM(Base):
    __tablename__ = "services"
    __table_args__ = table_args()

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    external_ref: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status_last_checked: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class ServiceStore:
    """Directory of service records, in memory or backed by PostgreSQL."""

    def __init__(
        self,
        *,
        db: AsyncDatabaseManager | None = None,
        seed: Iterable[ServiceRecord] = (),
    ) -> None:
        self._items: dict[str, ServiceRecord] = {item.id: item for item in seed}
        self._db = db
        self._orm_ready = False

    async def ensure_ready(self) -> None:
        await self._ensure_orm_ready()

    async def get_by_id(self, service_id: str) -> ServiceRecord:
        key = normalize_service_id(service_id)
        if self._db is None:
            item = self._items.get(key)
            if item is None:
                raise ServiceNotFoundError(key)
            return item

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(ServiceORM, key)
            return self._to_entity(row) if row else None

        found = await self._db.run_with_session(_run)
        if found is None:
            raise ServiceNotFoundError(key)
        return found

    async def list_services(self, query: ServiceFilter | None = None) -> list[ServiceRecord]:
        query = query or ServiceFilter()
        if self._db is None:
            return sorted(
                (item for item in self._items.values() if query.matches(item)),
                key=lambda item: (item.name.lower(), item.name),
            )

        await self._ensure_orm_ready()

        async def _run(session):
            stmt = select(ServiceORM)
            if query.category and query.category != ALL_CATEGORIES:
                stmt = stmt.where(ServiceORM.category == query.category)
            if query.search:
                needle = query.search.lower().strip()
                stmt = stmt.where(
                    or_(
                        func.lower(ServiceORM.name).contains(needle, autoescape=True),
                        func.lower(ServiceORM.description).contains(needle, autoescape=True),
                    )
                )
            if query.open_only:
                stmt = stmt.where(ServiceORM.is_open.is_(True))
            stmt = stmt.order_by(func.lower(ServiceORM.name).asc(), ServiceORM.name.asc())
            rows = (await session.scalars(stmt)).all()
            return [self._to_entity(row) for row in rows]

        return await self._db.run_with_session(_run)

    async def list_missing_external_ref(self) -> list[ServiceRecord]:
        return [item for item in await self.list_services() if not item.external_ref]

    async def add(self, record: ServiceRecord) -> ServiceRecord:
        record = replace(record, id=normalize_service_id(record.id))
        if self._db is None:
            self._items[record.id] = record
            return record

        await self._ensure_orm_ready()

        async def _run(session):
            row = ServiceORM(id=record.id)
            self._apply(row, record, MUTABLE_FIELDS)
            session.add(row)
            return record

        return await self._db.run_with_session(_run)

    async def save(self, record: ServiceRecord, fields: Iterable[str] | None = None) -> ServiceRecord:
        """Write ``fields`` of ``record`` (all mutable fields when omitted) over the stored copy."""
        key = normalize_service_id(record.id)
        names = MUTABLE_FIELDS if fields is None else frozenset(fields)
        unknown = names - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"not writable: {', '.join(sorted(unknown))}")

        if self._db is None:
            existing = self._items.get(key)
            if existing is None:
                raise ServiceNotFoundError(key)
            saved = replace(existing, **{name: getattr(record, name) for name in names})
            self._items[key] = saved
            return saved

        await self._ensure_orm_ready()

        async def _run(session):
            row = await session.get(ServiceORM, key)
            if row is None:
                return None
            self._apply(row, record, names)
            return self._to_entity(row)

        saved = await self._db.run_with_session(_run)
        if saved is None:
            raise ServiceNotFoundError(key)
        return saved

    async def _ensure_orm_ready(self) -> None:
        if self._db is None or self._orm_ready:
            return

        await prepare_schema(self._db)

        async def _seed_if_empty(session):
            count = int((await session.scalar(select(func.count()).select_from(ServiceORM))) or 0)
            if count > 0:
                return 0
            for item in self._items.values():
                row = ServiceORM(id=item.id)
                self._apply(row, item, MUTABLE_FIELDS)
                session.add(row)
            return len(self._items)

        seeded = await self._db.run_with_session(_seed_if_empty)
        if seeded:
            logger.info("service_store_seeded", extra={"count": seeded})
        self._orm_ready = True

    @staticmethod
    def _apply(row: ServiceORM, record: ServiceRecord, names: Iterable[str]) -> None:
        for name in names:
            setattr(row, name, getattr(record, name))

    @staticmethod
    def _to_entity(row: ServiceORM) -> ServiceRecord:
        return ServiceRecord(
            id=row.id,
            name=row.name,
            category=row.category,
            description=row.description or "",
            address=row.address or "",
            lat=row.lat,
            lng=row.lng,
            external_ref=row.external_ref or None,
            is_open=bool(row.is_open),
            status_last_checked=ensure_utc(row.status_last_checked),
            rating=row.rating or 0.0,
        )
