from __future__ import annotations

from dataclasses import dataclass

from devkit.db import AsyncDatabaseManager
from fastapi import Depends, Header, Request
from shared.security import JWTManager

from campus_api.clients.places_client import PlacesClient, UnconfiguredStatusSource
from campus_api.config import CampusSettings, load_campus_settings
from campus_api.db import build_database
from campus_api.errors import ApiError, InvalidTokenError
from campus_api.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
)
from campus_api.rate_limit import SlidingWindowLimiter
from campus_api.repositories.report_store import ReportStore
from campus_api.repositories.service_store import ServiceStore
from campus_api.repositories.user_store import UserAccount, UserStore
from campus_api.seed import seed_records
from campus_api.services.auth_service import AuthService, OtpSender
from campus_api.services.directory_service import DirectoryService
from campus_api.services.freshness import StatusSource, StatusSynchronizer
from campus_api.services.report_service import ReportService


@dataclass
class CampusContainer:
    settings: CampusSettings
    services: ServiceStore
    users: UserStore
    reports: ReportStore
    directory: DirectoryService
    auth: AuthService
    report_service: ReportService
    login_limiter: SlidingWindowLimiter
    api_metrics: InMemoryApiMetricsCollector
    prom_metrics: PrometheusApiMetricsCollector
    metrics: CompositeApiMetricsCollector
    db: AsyncDatabaseManager | None = None

    async def ensure_ready(self) -> None:
        await self.services.ensure_ready()
        await self.users.ensure_ready()
        await self.reports.ensure_ready()

    async def is_ready(self) -> bool:
        if self.db is None:
            return True
        return await self.db.is_healthy()

    async def close(self) -> None:
        if self.db is not None:
            await self.db.disconnect()


def build_status_source(settings: CampusSettings) -> StatusSource:
    if not settings.GOOGLE_MAPS_API_KEY:
        return UnconfiguredStatusSource()
    return PlacesClient(
        api_key=settings.GOOGLE_MAPS_API_KEY,
        base_url=settings.PLACES_BASE_URL,
        timeout_seconds=settings.STATUS_FETCH_TIMEOUT_SECONDS,
    )


def build_container(
    settings: CampusSettings | None = None,
    *,
    source: StatusSource | None = None,
    services: ServiceStore | None = None,
    otp_sender: OtpSender | None = None,
) -> CampusContainer:
    settings = settings or load_campus_settings()
    db = build_database(settings.DATABASE_URL)
    services = services or ServiceStore(db=db, seed=seed_records())
    users = UserStore(db=db)
    reports = ReportStore(db=db)

    api_metrics = InMemoryApiMetricsCollector()
    prom_metrics = PrometheusApiMetricsCollector()
    metrics = CompositeApiMetricsCollector([api_metrics, prom_metrics])

    synchronizer = StatusSynchronizer(
        services,
        source or build_status_source(settings),
        ttl_seconds=settings.STATUS_TTL_SECONDS,
        fetch_timeout_seconds=settings.STATUS_FETCH_TIMEOUT_SECONDS,
        observer=metrics.observe_sync,
    )
    jwt = JWTManager(secret=settings.JWT_SECRET_KEY, access_minutes=settings.ACCESS_TOKEN_MINUTES)
    return CampusContainer(
        settings=settings,
        services=services,
        users=users,
        reports=reports,
        directory=DirectoryService(services, synchronizer),
        auth=AuthService(users, jwt, otp_sender=otp_sender, otp_ttl_seconds=settings.OTP_TTL_SECONDS),
        report_service=ReportService(reports),
        login_limiter=SlidingWindowLimiter(
            limit=settings.LOGIN_ATTEMPTS_PER_WINDOW,
            window_seconds=settings.LOGIN_WINDOW_SECONDS,
        ),
        api_metrics=api_metrics,
        prom_metrics=prom_metrics,
        metrics=metrics,
        db=db,
    )


def get_container(request: Request) -> CampusContainer:
    return request.app.state.container


def get_directory_service(container: CampusContainer = Depends(get_container)) -> DirectoryService:
    return container.directory


def get_auth_service(container: CampusContainer = Depends(get_container)) -> AuthService:
    return container.auth


def get_report_service(container: CampusContainer = Depends(get_container)) -> ReportService:
    return container.report_service


def get_login_limiter(container: CampusContainer = Depends(get_container)) -> SlidingWindowLimiter:
    return container.login_limiter


async def get_current_user(
    authorization: str | None = Header(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> UserAccount:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise ApiError("UNAUTHORIZED", "missing bearer token", 401)
    token = authorization.split(" ", 1)[1].strip()
    try:
        return await auth.resolve_token(token)
    except InvalidTokenError as exc:
        raise ApiError("INVALID_TOKEN", str(exc), 401) from exc


async def get_verified_user(user: UserAccount = Depends(get_current_user)) -> UserAccount:
    if not user.is_verified:
        raise ApiError("UNVERIFIED", "please verify your email first", 403)
    return user
