from __future__ import annotations

from fastapi import APIRouter, Depends, status

from campus_api.dependencies import get_current_user, get_report_service, get_verified_user
from campus_api.errors import ApiError
from campus_api.repositories.report_store import ReportLocation
from campus_api.repositories.user_store import UserAccount
from campus_api.response import success_response
from campus_api.schemas.report import CreateReportRequest, ReportItem
from campus_api.services.report_service import ReportService

router = APIRouter(prefix="/v1/reports", tags=["reports"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report(
    body: CreateReportRequest,
    user: UserAccount = Depends(get_verified_user),
    service: ReportService = Depends(get_report_service),
) -> dict:
    location = None
    if body.location is not None:
        location = ReportLocation(lat=body.location.lat, lng=body.location.lng, address=body.location.address)
    try:
        report = await service.submit(
            user_id=user.user_id,
            report_type=body.type,
            description=body.description,
            location=location,
            image=body.image,
        )
    except ValueError as exc:
        raise ApiError("VALIDATION_ERROR", str(exc), 422) from exc
    return success_response(ReportItem.from_report(report).model_dump(mode="json"), meta={})


@router.get("/me")
async def my_reports(
    user: UserAccount = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> dict:
    reports = await service.list_for_user(user.user_id)
    data = [ReportItem.from_report(report).model_dump(mode="json") for report in reports]
    return success_response(data, meta={"count": len(data)})
