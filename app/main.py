# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, all routers and the
periodic ingestion scheduler.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import parking, status as status_router, ingestion, health
from app.database import create_tables
from app.config import settings
from app.services.ingestion import get_ingestion_job
from app.services.provider_client import get_provider_client
from app.services.scheduler import IngestionScheduler
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Parking Monitor API",
    description="Gate movement log, live occupancy and refurbishment status for parked vehicles.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

scheduler = None

# ── CORS (allow dashboard on same LAN to call the API) ──────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard host in production
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


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(parking.router,       prefix="/api/v1", tags=["🅿️  Occupancy"])
app.include_router(status_router.router, prefix="/api/v1", tags=["🔧 Refurbishment Status"])
app.include_router(ingestion.router,     prefix="/api/v1", tags=["📥 Ingestion"])
app.include_router(health.router,        prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    global scheduler
    logger.info("🚀 Parking Monitor starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"📡 Provider: {settings.PROVIDER_BASE_URL}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.SCHEDULER_ENABLED:
        scheduler = IngestionScheduler(get_ingestion_job(), settings.CRAWL_INTERVAL_SECONDS)
        scheduler.start()
        logger.info(f"⏱️  Ingestion scheduled every {settings.CRAWL_INTERVAL_SECONDS}s")
    else:
        logger.info("⏸️  Scheduler disabled — use POST /api/v1/ingestion/run")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Parking Monitor shutting down...")
    if scheduler is not None:
        await scheduler.stop()
    await get_provider_client().aclose()
