"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime

from src.models.achievement import UserAchievementProgress


class ReadingEventRequest(BaseModel):
    """Request to queue a reading-activity event"""
    event_type: str = Field(..., min_length=1, description="Event tag, e.g. 'book_completed'")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Event details (book id, status, ...)")


class ReadingEventResponse(BaseModel):
    """Response after queueing an event"""
    event_id: Optional[str] = Field(None, description="Queued event identifier")
    user_id: str


class AchievementCheckResponse(BaseModel):
    """Achievements unlocked by an on-demand check"""
    user_id: str
    unlocked_achievements: List[str] = Field(..., description="Store ids unlocked by this check")


class AchievementProgressListResponse(BaseModel):
    """Raw progress rows"""
    user_id: str
    achievements: List[UserAchievementProgress]


class MarkNotifiedResponse(BaseModel):
    """Result of acknowledging an achievement notification"""
    success: bool


class InitializeAchievementResponse(BaseModel):
    """Progress row created (or found) by an explicit initialization"""
    success: bool
    achievement: UserAchievementProgress


class ProcessEventsResponse(BaseModel):
    """Result of draining the event queue"""
    processed_count: int
    message: str


class SeedAchievementsResponse(BaseModel):
    """Result of seeding the catalog"""
    seeded: int
    mapped: int = Field(..., description="Catalog keys resolvable after the reload")


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(..., description="Check timestamp")
