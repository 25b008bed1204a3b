"""FastAPI application setup

Serve with: uvicorn src.api.server:create_api_application --factory
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.routes import router
from src.api.middleware import setup_cors, setup_rate_limiting
from src.achievements.service import get_achievement_service
from src.db.connection import db
from src.config import LOG_LEVEL, validate_config
from src.exceptions import (
    ReadingTrackerError,
    ValidationError,
    UnknownAchievementError,
)

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting achievements API...")
    validate_config()
    await db.init_pool()
    logger.info("Database pool initialized")

    if not await get_achievement_service().identity_map.ensure_loaded():
        logger.warning("Achievement identifiers not loaded at startup; will retry on first request")

    yield

    # Shutdown
    logger.info("Shutting down achievements API...")
    await db.close_pool()
    logger.info("Database pool closed")


def _status_for(exc: ReadingTrackerError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UnknownAchievementError):
        return status.HTTP_404_NOT_FOUND
    # Store and mapping failures: feature temporarily unavailable
    return status.HTTP_503_SERVICE_UNAVAILABLE


def create_api_application(use_lifespan: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Reading Achievements API",
        description="Achievement evaluation and progress tracking for the reading tracker",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)

    @app.exception_handler(ReadingTrackerError)
    async def reading_tracker_exception_handler(request: Request, exc: ReadingTrackerError):
        return JSONResponse(status_code=_status_for(exc), content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
