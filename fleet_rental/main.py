# fleet_rental/main.py
"""
FastAPI application entry point.
Includes security middleware, error handlers, the polled feeds and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from fleet_rental.routers import (
    availability, calendar, gps, health, journal, notifications, quotes, reservations,
)
from fleet_rental.database import create_tables
from fleet_rental.config import settings
from fleet_rental.exceptions import FleetError, PartialFailure
from fleet_rental.services.entity_client import EntityClient
from fleet_rental.services.gps_service import GpsFeed
from fleet_rental.services.notification_service import NotificationFeed
from fleet_rental.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Fleet Rental Core API",
    description="Vehicle availability calendar, quote → reservation allocation and notifications.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard calls the API from the browser) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(FleetError)
async def fleet_error_handler(request: Request, exc: FleetError):
    content = {"detail": exc.message, "error": type(exc).__name__, **exc.detail}
    if isinstance(exc, PartialFailure):
        content["applied"] = exc.applied
        logger.error(f"Partial failure on {request.url.path}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(calendar.router,      prefix="/api/v1", tags=["📅 Calendar"])
app.include_router(availability.router,  prefix="/api/v1", tags=["🚗 Availability"])
app.include_router(quotes.router,        prefix="/api/v1", tags=["📝 Quotes"])
app.include_router(reservations.router,  prefix="/api/v1", tags=["📋 Reservations"])
app.include_router(notifications.router, prefix="/api/v1", tags=["🔔 Notifications"])
app.include_router(gps.router,           prefix="/api/v1", tags=["📍 GPS"])
app.include_router(journal.router,       prefix="/api/v1", tags=["🧾 Journal"])
app.include_router(health.router,        prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Fleet Rental backend starting up...")
    create_tables()
    logger.info("✅ Journal tables ready")

    client = EntityClient()
    app.state.entity_client = client
    app.state.notification_feed = NotificationFeed(client)
    app.state.gps_feed = GpsFeed(client)
    app.state.notification_feed.start()
    app.state.gps_feed.start()

    logger.info(f"📡 Entity API: {settings.ENTITY_API_BASE_URL}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_HOST}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Fleet Rental backend shutting down...")
    await app.state.notification_feed.stop()
    await app.state.gps_feed.stop()
    await app.state.entity_client.aclose()
