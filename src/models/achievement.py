"""Achievement models for the reading tracker"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    MILESTONE = "milestone"
    GENRE = "genre"
    SERIES = "series"
    AUTHOR = "author"
    CONSISTENCY = "consistency"


class AchievementDifficulty(str, Enum):
    """Achievement difficulty tiers (display only)"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class MetricType(str, Enum):
    """Reading metric an achievement threshold is compared against"""
    BOOKS_READ = "books_read"
    UNIQUE_GENRES = "unique_genres"
    SAME_AUTHOR = "same_author"
    COMPLETE_SERIES = "complete_series"
    READING_STREAK = "reading_streak"


class ReadingEventType(str, Enum):
    """Event types that may appear in the achievement event queue"""
    STATUS_CHANGED_TO_READ = "status_changed_to_read"
    BOOK_COMPLETED = "book_completed"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"

    @classmethod
    def parse(cls, value: str) -> Optional["ReadingEventType"]:
        """Return the matching member, or None for unrecognized tags"""
        try:
            return cls(value)
        except ValueError:
            return None


class AchievementRequirement(BaseModel):
    """Metric threshold; stored as {"type": ..., "target": ...}"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    metric_type: MetricType = Field(..., alias="type")
    target: int = Field(..., gt=0)


class AchievementDefinition(BaseModel):
    """Achievement definition compiled into the application"""
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    description: str
    category: AchievementCategory
    difficulty: AchievementDifficulty
    icon: str
    points: int = Field(..., gt=0)
    requirement: AchievementRequirement
    secret_until_unlocked: bool = False

    @property
    def target(self) -> int:
        return self.requirement.target

    @property
    def metric_type(self) -> MetricType:
        return self.requirement.metric_type


class UserAchievementProgress(BaseModel):
    """Per-user progress toward one achievement (one user_achievements row)"""
    user_id: str
    achievement_id: str
    current_value: int = Field(0, ge=0)
    target_value: int
    completed: bool = False
    completed_at: Optional[datetime] = None
    notified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserAchievementProgress":
        """Build from a user_achievements row (progress JSONB holds current/target)"""
        progress = row.get("progress") or {}
        return cls(
            user_id=str(row["user_id"]),
            achievement_id=str(row["achievement_id"]),
            current_value=progress.get("current", 0),
            target_value=progress.get("target", 0),
            completed=row.get("completed", False),
            completed_at=row.get("completed_at"),
            notified=row.get("notified", False),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class ProgressUpdate(BaseModel):
    """Result of a progress write"""
    progress: UserAchievementProgress
    completed_now: bool = False


class AchievementEvent(BaseModel):
    """Entry in the achievement event queue"""
    event_id: str
    user_id: str
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    processed: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AchievementEvent":
        """Build from an achievement_events row; a non-object event_data is kept under 'value'"""
        event_data = row.get("event_data")
        if event_data is None:
            event_data = {}
        elif not isinstance(event_data, dict):
            event_data = {"value": event_data}
        return cls(
            event_id=str(row["event_id"]),
            user_id=str(row["user_id"]),
            event_type=row["event_type"],
            payload=event_data,
            processed=row.get("processed", False),
            created_at=row.get("created_at"),
        )


class AchievementView(BaseModel):
    """Progress row enriched with its catalog definition for display"""
    achievement_id: str
    key: str
    title: str
    description: str
    category: AchievementCategory
    difficulty: AchievementDifficulty
    icon: str
    points: int
    secret_until_unlocked: bool = False
    current_value: int
    target_value: int
    completed: bool
    completed_at: Optional[datetime] = None
    notified: bool


class AchievementSummary(BaseModel):
    """A user's achievements with totals"""
    user_id: str
    achievements: list[AchievementView]
    total_completed: int
    total_achievements: int
    total_points: int
