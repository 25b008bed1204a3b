"""API routes for reading achievements"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request, status

from src.api.models import (
    ReadingEventRequest, ReadingEventResponse,
    AchievementCheckResponse, AchievementProgressListResponse,
    MarkNotifiedResponse, InitializeAchievementResponse, ProcessEventsResponse, SeedAchievementsResponse,
    HealthCheckResponse,
)
from src.api.auth import verify_api_key, verify_admin_key
from src.api.middleware import limiter
from src.achievements.service import AchievementService, get_achievement_service
from src.achievements import catalog
from src.config import ACHIEVEMENT_BATCH_SIZE
from src.db.connection import db
from src.models.achievement import AchievementSummary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/v1/users/{user_id}/achievements", response_model=AchievementSummary)
@limiter.limit("30/minute")
async def get_achievements_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Achievements with catalog details and point totals (Rate limit: 30/minute)"""
    return await service.get_user_summary(user_id)


@router.get("/api/v1/users/{user_id}/achievements/progress", response_model=AchievementProgressListResponse)
@limiter.limit("30/minute")
async def get_achievement_progress_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Raw progress rows (Rate limit: 30/minute)"""
    achievements = await service.get_user_achievements(user_id)
    return AchievementProgressListResponse(user_id=user_id, achievements=achievements)


@router.get("/api/v1/users/{user_id}/achievements/unnotified", response_model=AchievementProgressListResponse)
@limiter.limit("60/minute")
async def get_unnotified_achievements_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Completed achievements the user has not been shown yet (Rate limit: 60/minute)"""
    achievements = await service.get_unnotified_achievements(user_id)
    return AchievementProgressListResponse(user_id=user_id, achievements=achievements)


@router.post(
    "/api/v1/users/{user_id}/achievements/{achievement_id}/notified",
    response_model=MarkNotifiedResponse
)
@limiter.limit("60/minute")
async def mark_notified_endpoint(
    request: Request,
    user_id: str,
    achievement_id: str,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Acknowledge an unlock notification"""
    success = await service.mark_notified(user_id, achievement_id)
    return MarkNotifiedResponse(success=success)


@router.post(
    "/api/v1/users/{user_id}/achievements/{achievement_id}/initialize",
    response_model=InitializeAchievementResponse
)
@limiter.limit("30/minute")
async def initialize_achievement_endpoint(
    request: Request,
    user_id: str,
    achievement_id: str,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Create the zero-progress row for one achievement (404 if the id is unknown)"""
    achievement = await service.initialize_achievement(user_id, achievement_id)
    return InitializeAchievementResponse(success=True, achievement=achievement)


@router.post("/api/v1/users/{user_id}/achievements/check", response_model=AchievementCheckResponse)
@limiter.limit("10/minute")
async def check_achievements_endpoint(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """
    Re-evaluate every achievement for a user

    Rate limit: 10 requests per minute (runs five aggregate queries)
    """
    unlocked = await service.check_all(user_id)
    return AchievementCheckResponse(user_id=user_id, unlocked_achievements=unlocked)


@router.post(
    "/api/v1/users/{user_id}/reading-events",
    response_model=ReadingEventResponse,
    status_code=status.HTTP_201_CREATED
)
@limiter.limit("60/minute")
async def queue_reading_event_endpoint(
    request: Request,
    user_id: str,
    event: ReadingEventRequest,
    api_key: str = Depends(verify_api_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Queue a reading-activity event for asynchronous evaluation"""
    event_id = await service.enqueue_event(user_id, event.event_type, event.payload)
    return ReadingEventResponse(event_id=event_id, user_id=user_id)


@router.post("/api/v1/achievements/process-events", response_model=ProcessEventsResponse)
@limiter.limit("30/minute")
async def process_events_endpoint(
    request: Request,
    max_batch: int = Query(ACHIEVEMENT_BATCH_SIZE, ge=1, le=500),
    api_key: str = Depends(verify_admin_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Drain one batch of the achievement event queue (called by a scheduler)"""
    processed_count = await service.process_batch(max_batch)
    return ProcessEventsResponse(
        processed_count=processed_count,
        message=f"Processed {processed_count} achievement events"
    )


@router.post("/api/v1/achievements/seed", response_model=SeedAchievementsResponse)
@limiter.limit("5/minute")
async def seed_achievements_endpoint(
    request: Request,
    api_key: str = Depends(verify_admin_key),
    service: AchievementService = Depends(get_achievement_service)
):
    """Write the catalog into the achievements table and reload identifiers"""
    seeded = await service.seed_catalog()
    mapped = sum(1 for d in catalog.list_all() if service.identity_map.resolve(d.key))
    return SeedAchievementsResponse(seeded=seeded, mapped=mapped)


@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    try:
        # Check database connection
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                await cur.fetchone()

        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"

    return HealthCheckResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        timestamp=datetime.now()
    )
