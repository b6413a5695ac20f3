from __future__ import annotations

from contextlib import asynccontextmanager

from devkit.observability import configure_otel, configure_probe_access_log_filter
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from campus_api.dependencies import CampusContainer, build_container
from campus_api.errors import ApiError
from campus_api.middleware import ObservabilityMiddleware
from campus_api.response import error_response, success_response
from campus_api.routers.auth import router as auth_router
from campus_api.routers.reports import router as reports_router
from campus_api.routers.services import router as services_router


def create_app(container: CampusContainer | None = None) -> FastAPI:
    container = container or build_container()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await container.ensure_ready()
        try:
            yield
        finally:
            await container.close()

    app = FastAPI(title="CampusLink API", version="0.1.0", lifespan=lifespan)
    configure_otel(service_name=container.settings.SERVICE_NAME)
    configure_probe_access_log_filter()
    app.state.container = container
    app.add_middleware(ObservabilityMiddleware, collector=container.metrics)
    app.include_router(services_router)
    app.include_router(auth_router)
    app.include_router(reports_router)

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> JSONResponse:
        if not await container.is_ready():
            return JSONResponse(status_code=503, content=error_response("NOT_READY", "database unavailable"))
        return JSONResponse(content=success_response({"status": "ready"}, meta={}))

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = container.prom_metrics.render()
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response("VALIDATION_ERROR", message),
        )

    return app


app = create_app()
