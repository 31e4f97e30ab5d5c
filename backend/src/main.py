# pyright: reportMissingTypeStubs=false
"""
Class Series Backend API

A FastAPI application that materializes recurring class series into dated
class sessions for a tutoring school.

Features:
- Series extension by calendar months, with per-date overrides
- Dry-run preview of an extension's conflicts
- Rolling advance generation, on demand or from a daily scheduler
- PostgreSQL database with SQLAlchemy ORM
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api import class_series
from core.config import SERIES_ADVANCE_ENABLED
from services.series_advance_scheduler import (
    start_series_advance_scheduler, stop_series_advance_scheduler
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("Class Series API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Class Series Backend API")

    # Database sessions are created fresh for each scheduler run
    if SERIES_ADVANCE_ENABLED:
        try:
            await start_series_advance_scheduler()
        except Exception as e:
            logger.exception(f"Failed to start series advance scheduler: {e}")
    else:
        logger.info("Series advance scheduler disabled (SERIES_ADVANCE_ENABLED is not set)")

    yield

    try:
        await stop_series_advance_scheduler()
    except Exception as e:
        logger.exception(f"Error stopping series advance scheduler: {e}")

    logger.info("Shutting down Class Series Backend API")


# Create FastAPI application
app = FastAPI(
    title="Class Series Backend",
    description="Recurring class session generation and conflict resolution",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# Include API routers
app.include_router(
    class_series.router,
    prefix="/api/class-series",
    tags=["class-series"],
    responses={
        400: {"description": "Bad request"},
        404: {"description": "Resource not found"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Class Series Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )
