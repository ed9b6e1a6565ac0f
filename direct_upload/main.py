"""
FastAPI application entry point.
Sets up the API with lifespan events for database initialization.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from direct_upload import __version__
from direct_upload.config import settings
from direct_upload.database import init_db
from direct_upload.api.router import api_router
from direct_upload.middleware.metrics_middleware import MetricsMiddleware
from direct_upload.storage.s3_client import get_s3_client
from direct_upload.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure logging, create tables, build the storage client
    """
    configure_logging('upload-api', settings.log_level)

    await init_db()

    if not get_s3_client().is_configured:
        if settings.environment == "production":
            raise RuntimeError("S3 storage must be configured in production")
        logger.warning("Starting without storage credentials; /uploads/sign will fail")

    yield


# Create FastAPI app
app = FastAPI(
    title="Direct Upload API",
    description="Signed-URL uploads straight to S3-compatible storage",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware (browser clients call the API from another origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Direct Upload API",
        "version": __version__,
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
