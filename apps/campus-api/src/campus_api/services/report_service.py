from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from uuid import uuid4

from devkit.timezone import now_utc

from campus_api.repositories.report_store import IssueReport, ReportLocation, ReportStore, ReportType

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, store: ReportStore, *, clock: Callable[[], datetime] = now_utc) -> None:
        self._store = store
        self._clock = clock

    async def submit(
        self,
        *,
        user_id: str,
        report_type: ReportType,
        description: str,
        location: ReportLocation | None = None,
        image: str | None = None,
    ) -> IssueReport:
        text = description.strip()
        if not text:
            raise ValueError("description cannot be empty")
        report = await self._store.add(
            IssueReport(
                report_id=str(uuid4()),
                user_id=user_id,
                type=report_type,
                description=text,
                location=location,
                image=image or None,
                created_at=self._clock(),
            )
        )
        logger.info("report_submitted", extra={"report_id": report.report_id, "report_type": report.type.value})
        return report

    async def list_for_user(self, user_id: str) -> list[IssueReport]:
        return await self._store.list_by_user(user_id)
