"""
Tempo Guide API

FastAPI application for Strava-connected running training plans.
"""

from contextlib import asynccontextmanager
import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tempo_guide import __version__
from tempo_guide.config import settings
from tempo_guide.db.session import init_db
from tempo_guide.api.v1.router import api_router
from tempo_guide.shared.errors import AuthenticationError, RefreshFailed, TempoGuideError


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting Tempo Guide API...")
    await init_db()
    logger.info("Database initialized")

    if not settings.strava_configured:
        logger.warning("Strava credentials not set; Strava endpoints will return 503")

    yield

    logger.info("Shutting down...")


# === App Creation ===
app = FastAPI(
    title="Tempo Guide API",
    description="Running training plans with Strava activity import",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# === Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error Handling ===
@app.exception_handler(TempoGuideError)
async def tempo_guide_error_handler(request: Request, exc: TempoGuideError):
    """Translate application errors into {"error": message} bodies."""
    body = {"error": str(exc) or exc.__class__.__name__}
    headers = None
    if isinstance(exc, RefreshFailed):
        body["reconnectRequired"] = True
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


# === Routes ===
app.include_router(api_router, prefix="/api/v1")


# === Health Check ===
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
