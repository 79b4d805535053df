# ecotrack/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecotrack.database import engine, settings
from ecotrack.dependencies import close_services, get_firebase_provider
from ecotrack.errors import CONNECTIVITY_ERRORS, RealtimeStoreError
from ecotrack.init_db import init_database
from ecotrack.responses import error_response
from ecotrack.services.scheduler import start_scheduler, stop_scheduler

# Routers
from ecotrack.routers import (
    health_router, rooms_router, sensors_router, relays_router,
    sync_router, maintenance_router, events_router,
)
from ecotrack.routers.events import publish_event

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _forward_relay_change(path: str, data):
    publish_event({"type": "relay", "source": "firebase", "path": path, "data": data})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("EcoTrack API starting...")
    init_database()

    unsubscribe = None
    try:
        unsubscribe = get_firebase_provider().subscribe("relays", _forward_relay_change)
    except RealtimeStoreError as e:
        logger.warning(f"Live relay updates disabled: {e}")

    if settings.sync_scheduler_enabled:
        start_scheduler()

    try:
        yield
    finally:
        logger.info("Shutting down...")
        stop_scheduler()
        if unsubscribe:
            unsubscribe()
        close_services()
        engine.dispose()


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query"))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", "invalid"))
    return "; ".join(parts) or "Invalid request"


def create_app() -> FastAPI:
    app = FastAPI(
        title="EcoTrack Energy Dashboard API",
        description="Live and historical smart-home sensor data, power metering and relay control",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(request.method, 400, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(request.method, exc.status_code, str(exc.detail))

    @app.exception_handler(RealtimeStoreError)
    async def realtime_error_handler(request: Request, exc: RealtimeStoreError):
        return error_response(request.method, 503, "Realtime database unavailable")

    for error_class in CONNECTIVITY_ERRORS:
        @app.exception_handler(error_class)
        async def database_error_handler(request: Request, exc: Exception):
            logger.error(f"{request.method} {request.url.path}: database unavailable ({exc})")
            return error_response(request.method, 503, "Database unavailable")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} failed")
        return error_response(request.method, 500, "Internal server error")

    # Mount router
    app.include_router(health_router)          # /healthz, /api/health, GET /api/sync-firebase
    app.include_router(sync_router)            # POST /api/sync-firebase
    app.include_router(rooms_router)           # /api/rooms
    app.include_router(sensors_router)         # /api/historical-data, /api/pzem-data
    app.include_router(relays_router)          # /api/relay-control, /api/relay-states, /api/relay-sync
    app.include_router(maintenance_router)     # /api/cleanup, /api/system-status, /api/debug
    app.include_router(events_router)          # /api/events/sse

    return app


app = create_app()
