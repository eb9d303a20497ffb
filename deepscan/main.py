"""
DeepScan API — Application entry point.

Bootstraps FastAPI, configures logging, wires up CORS for the browser
front end and registers the route groups.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager

Run locally:
    uvicorn deepscan.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deepscan.core.config import settings
from deepscan.routes.detect import router as detect_router
from deepscan.routes.health import router as health_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    Nothing is opened here: each detection opens and closes its own vendor
    connection. Startup only records which vendor the service forwards to.
    """
    logger.info(
        "Starting DeepScan API (env: %s, vendor: %s)",
        settings.environment,
        settings.detection_vendor.value,
    )
    yield
    logger.info("Shutting down DeepScan API")


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="DeepScan API",
    description=(
        "Upload an image or video and get an authenticity score from a "
        "third-party deepfake-detection vendor. Results are probabilistic — not guaranteed."
    ),
    version="0.1.0",
    lifespan=lifespan,
    # Disable docs in production to reduce attack surface
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: allow the browser front end to call the API.
# In production, restrict allow_origins to your actual domain.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(detect_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "DeepScan API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
