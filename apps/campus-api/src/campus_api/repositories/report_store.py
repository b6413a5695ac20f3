from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from devkit.db import AsyncDatabaseManager, Base
from devkit.timezone import ensure_utc, now_utc
from sqlalchemy import DateTime, Float, String, Text, select
from sqlalchemy.orm import Mapped, mapped_column

from campus_api.db import prepare_schema, table_args


class ReportType(str, Enum):
    STREET_LIGHT = "Street Light"
    ROAD_SAFETY = "Road Safety"
    WATER_SUPPLY = "Water Supply"
    SAFETY_CONCERN = "Safety Concern"
    OTHER = "Other"


class ReportStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


@dataclass(frozen=True)
class ReportLocation:
    lat: float | None = None
    lng: float | None = None
    address: str | None = None


@dataclass(frozen=True)
class IssueReport:
    report_id: str
    user_id: str
    type: ReportType
    description: str
    status: ReportStatus = ReportStatus.PENDING
    location: ReportLocation | None = None
    image: str | None = None
    created_at: datetime = field(default_factory=now_utc)


class ReportORM(Base):
    __tablename__ = "reports"
    __table_args__ = table_args()

    report_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=ReportStatus.PENDING.value)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class ReportStore:
    def __init__(self, *, db: AsyncDatabaseManager | None = None) -> None:
        self._db = db
        self._orm_ready = False
        self._reports: dict[str, IssueReport] = {}

    async def ensure_ready(self) -> None:
        if self._db is None or self._orm_ready:
            return
        await prepare_schema(self._db)
        self._orm_ready = True

    async def add(self, report: IssueReport) -> IssueReport:
        if self._db is None:
            self._reports[report.report_id] = report
            return report

        await self.ensure_ready()

        async def _run(session):
            location = report.location or ReportLocation()
            session.add(
                ReportORM(
                    report_id=report.report_id,
                    user_id=report.user_id,
                    type=report.type.value,
                    description=report.description,
                    status=report.status.value,
                    lat=location.lat,
                    lng=location.lng,
                    address=location.address,
                    image=report.image,
                    created_at=report.created_at,
                )
            )
            return report

        return await self._db.run_with_session(_run)

    async def list_by_user(self, user_id: str) -> list[IssueReport]:
        if self._db is None:
            # reversed insertion order breaks created_at ties newest first
            return sorted(
                (item for item in reversed(self._reports.values()) if item.user_id == user_id),
                key=lambda item: item.created_at,
                reverse=True,
            )

        await self.ensure_ready()

        async def _run(session):
            stmt = (
                select(ReportORM)
                .where(ReportORM.user_id == user_id)
                .order_by(ReportORM.created_at.desc())
            )
            rows = (await session.scalars(stmt)).all()
            return [self._to_entity(row) for row in rows]

        return await self._db.run_with_session(_run)

    @staticmethod
    def _to_entity(row: ReportORM) -> IssueReport:
        location = None
        if row.lat is not None or row.lng is not None or row.address:
            location = ReportLocation(lat=row.lat, lng=row.lng, address=row.address)
        return IssueReport(
            report_id=row.report_id,
            user_id=row.user_id,
            type=ReportType(row.type),
            description=row.description,
            status=ReportStatus(row.status),
            location=location,
            image=row.image,
            created_at=ensure_utc(row.created_at) or now_utc(),
        )
