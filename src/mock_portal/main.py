"""FastAPI application wiring for the mock API portal.

Beginner terms used in this file:
- FastAPI app: the main web application object.
- Route/path operation: a function exposed over HTTP (for example, GET /health).
  Not to be confused with a portal Route, which is a simulated endpoint.
- app.state: a place to store shared runtime objects (storage, simulator).
- lifespan: startup/shutdown hook; storage is created and migrated there.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from mock_portal.app import portal
from mock_portal.app.errors import (
    InvalidIdError,
    NotFoundError,
    QueryError,
    RouteDisabledError,
    WriteError,
)
from mock_portal.app.invocation import invoke_route
from mock_portal.app.metrics import aggregate
from mock_portal.app.models import (
    Api,
    ApiListResponse,
    InvokeResponse,
    MonitorSnapshot,
    RecentLogsResponse,
    RouteListResponse,
)
from mock_portal.app.monitor import load_monitor_snapshot
from mock_portal.app.simulator import InvocationSimulator
from mock_portal.config.settings import MAX_RECENT_LIMIT, Settings, get_settings
from mock_portal.storage.base import PortalStorage
from mock_portal.storage.postgres import PostgresPortalStorage

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str) -> None:
    """Attach one stream handler to the package logger; safe to call repeatedly."""
    package_logger = logging.getLogger("mock_portal")
    package_logger.setLevel(level.upper())
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        package_logger.addHandler(handler)


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    storage_override: PortalStorage | None,
) -> None:
    if not hasattr(app.state, "storage"):
        database_url = settings.resolved_database_url()
        if storage_override is None and not database_url:
            raise RuntimeError(
                "Missing database URL. Set MOCK_PORTAL_DATABASE_URL "
                "or DATABASE_URL before starting the app."
            )
        app.state.storage = storage_override or PostgresPortalStorage(
            database_url, timeout_s=settings.storage_timeout_s
        )
        app.state.storage.migrate()
        logger.info(
            "app event=storage_ready backend=%s", type(app.state.storage).__name__
        )

    if not hasattr(app.state, "settings"):
        app.state.settings = settings

    if not hasattr(app.state, "simulator"):
        app.state.simulator = InvocationSimulator(
            latency_min_ms=settings.latency_min_ms,
            latency_max_ms=settings.latency_max_ms,
        )


def create_app(
    *,
    storage: PortalStorage | None = None,
    settings_override: Settings | None = None,
    simulator: InvocationSimulator | None = None,
) -> FastAPI:
    """Application factory.

    Pass `storage` (and optionally `simulator`) to run against test doubles;
    otherwise PostgreSQL is opened lazily from settings on startup.
    """
    settings = settings_override or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure_runtime_state(app, settings=settings, storage_override=storage)
        yield

    app_lifespan = lifespan if storage is None else None
    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=app_lifespan)

    if simulator is not None:
        app.state.simulator = simulator
    # Keep test paths reliable when lifespan is not executed by the client.
    if storage is not None:
        _ensure_runtime_state(app, settings=settings, storage_override=storage)

    def _get_storage(request: Request) -> PortalStorage:
        if not hasattr(request.app.state, "storage"):
            _ensure_runtime_state(request.app, settings=settings, storage_override=storage)
        return request.app.state.storage

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app_name}

    @app.get("/apis", response_model=ApiListResponse)
    def list_apis(request: Request) -> Any:
        try:
            apis = portal.list_published_apis(_get_storage(request))
        except QueryError as exc:
            return _error(500, f"Error loading APIs: {exc}")
        return ApiListResponse(apis=apis)

    @app.get("/apis/{api_id}", response_model=Api)
    def get_api(api_id: str, request: Request) -> Any:
        try:
            return portal.get_api(api_id, _get_storage(request))
        except InvalidIdError as exc:
            return _error(400, f"Invalid API id: {exc}")
        except NotFoundError:
            return _error(404, "API not found", api_id=api_id)
        except QueryError as exc:
            return _error(500, str(exc))

    @app.get("/apis/{api_id}/routes", response_model=RouteListResponse)
    def list_routes(api_id: str, request: Request) -> Any:
        try:
            routes = portal.list_routes(api_id, _get_storage(request))
        except InvalidIdError as exc:
            return _error(400, f"Invalid API id: {exc}")
        except QueryError as exc:
            return _error(500, str(exc))
        return RouteListResponse(api_id=api_id.strip().lower(), routes=routes)

    @app.get("/apis/{api_id}/logs", response_model=RecentLogsResponse)
    def recent_logs(
        api_id: str,
        request: Request,
        limit: int | None = Query(default=None, ge=1, le=MAX_RECENT_LIMIT),
    ) -> Any:
        window = limit or settings.recent_logs_limit
        try:
            records = portal.fetch_recent_logs(api_id, _get_storage(request), window)
        except InvalidIdError as exc:
            return _error(400, f"Invalid API id: {exc}")
        except QueryError as exc:
            return _error(500, str(exc))
        return RecentLogsResponse(
            api_id=api_id.strip().lower(),
            limit=window,
            logs=records,
            metrics=aggregate(records),
        )

    @app.get("/apis/{api_id}/monitor", response_model=MonitorSnapshot)
    def monitor(
        api_id: str,
        request: Request,
        limit: int | None = Query(default=None, ge=1, le=MAX_RECENT_LIMIT),
    ) -> MonitorSnapshot:
        window = limit or settings.recent_logs_limit
        return load_monitor_snapshot(api_id, _get_storage(request), window)

    # Request body is ignored; the route id alone drives the simulation.
    @app.post("/api/try/{route_id}", response_model=InvokeResponse)
    def try_route(route_id: str, request: Request) -> Any:
        return _invoke(route_id, request)

    # A template link whose id never got filled in lands here.
    @app.post("/api/try", response_model=InvokeResponse)
    def try_route_without_id(request: Request) -> Any:
        return _invoke("", request)

    def _invoke(route_id: str, request: Request) -> Any:
        storage_backend = _get_storage(request)
        try:
            result = invoke_route(
                route_id,
                routes=storage_backend,
                logs=storage_backend,
                simulator=request.app.state.simulator,
            )
        except InvalidIdError as exc:
            return _error(
                400,
                f"Invalid routeId: {route_id!r}",
                debug={
                    "req_url": str(request.url),
                    "route_id": route_id,
                    "reason": exc.reason,
                },
            )
        except NotFoundError:
            return _error(404, "Route not found", route_id=route_id)
        except RouteDisabledError as exc:
            return _error(403, "Route disabled", route_id=exc.route_id)
        except WriteError as exc:
            return _error(500, "Failed to write log", detail=str(exc))
        except QueryError as exc:
            return _error(500, "Failed to load route", detail=str(exc))

        return InvokeResponse(
            ok=True,
            route=result.route,
            latency_ms=result.outcome.latency_ms,
            status_code=result.outcome.status_code,
            response=result.outcome.body,
        )

    return app


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """Structured, human-readable error body shared by every endpoint."""
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# Module-level app for `uvicorn mock_portal.main:app`.
app = create_app()
