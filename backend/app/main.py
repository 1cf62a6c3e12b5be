"""
FastAPI application entry point.
Sets up the API with lifespan events for database and bucket initialization.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import settings
from app.database import init_db
from app.api.router import api_router
from app.exceptions import StorageError
from app.middleware.metrics_middleware import MetricsMiddleware
from app.storage.s3_client import get_storage_client
from app.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Configure logging, create accounting tables, ensure the bucket exists
    - Shutdown: Dispose of the database engine
    """
    configure_logging(settings.app_name, settings.log_level)

    await init_db()

    # A missing or unreachable bucket is logged, not fatal:
    # the health endpoint reports it and requests fail with storage errors
    logger.info("Initializing object storage client...")
    try:
        await get_storage_client().ensure_bucket()
    except StorageError as e:
        logger.error(f"Error initializing object storage: {e}")

    logger.info(f"{settings.app_name} is running ({settings.environment})")

    yield

    from app.database import engine
    await engine.dispose()
    logger.info(f"{settings.app_name} is shutting down gracefully...")


# Create FastAPI app
app = FastAPI(
    title="Media Gateway",
    description="Upload, download and range-aware streaming of files with usage accounting",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "Accept-Ranges", "Content-Length", "Content-Disposition"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

# Include API routes
app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Media Gateway",
        "version": "0.1.0",
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
