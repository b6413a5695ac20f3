from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from campus_api.repositories.report_store import IssueReport, ReportStatus, ReportType


class ReportLocationBody(BaseModel):
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=500)


class CreateReportRequest(BaseModel):
    type: ReportType
    description: str = Field(min_length=1, max_length=2000)
    location: ReportLocationBody | None = None
    image: str | None = None


class ReportItem(BaseModel):
    report_id: str
    user_id: str
    type: ReportType
    description: str
    status: ReportStatus
    location: ReportLocationBody | None
    image: str | None
    created_at: datetime

    @classmethod
    def from_report(cls, report: IssueReport) -> "ReportItem":
        location = None
        if report.location is not None:
            location = ReportLocationBody(
                lat=report.location.lat,
                lng=report.location.lng,
                address=report.location.address,
            )
        return cls(
            report_id=report.report_id,
            user_id=report.user_id,
            type=report.type,
            description=report.description,
            status=report.status,
            location=location,
            image=report.image,
            created_at=report.created_at,
        )
