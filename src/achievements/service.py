"""
AchievementService - entry point for callers (API routes, reading-status hooks)

Wires the identity map, progress tracker, evaluator and event processor
together. Read operations degrade to empty results when the store is
unavailable; seeding, event enqueueing and explicit initialization raise.
"""

import logging
from typing import Any, Optional, Union

from src.config import ACHIEVEMENT_BATCH_SIZE
from src.db import queries
from src.exceptions import (
    AchievementError,
    MappingUnavailableError,
    UnknownAchievementError,
)
from src.achievements import catalog
from src.achievements.evaluators import AchievementEvaluator
from src.achievements.identifiers import achievement_id_v1
from src.achievements.mapping import AchievementIdentityMap
from src.achievements.processor import AchievementEventProcessor
from src.achievements.progress import ProgressTracker
from src.models.achievement import (
    AchievementSummary,
    AchievementView,
    ReadingEventType,
    UserAchievementProgress,
)

logger = logging.getLogger(__name__)


class AchievementService:
    """
    Service for reading achievements.

    Responsibilities:
    - Evaluate achievements for a user on demand
    - Expose progress and pending notifications
    - Drain the achievement event queue
    - Seed the catalog into the store
    """

    def __init__(self, identity_map: Optional[AchievementIdentityMap] = None):
        self.identity_map = identity_map or AchievementIdentityMap()
        self.tracker = ProgressTracker(self.identity_map)
        self.evaluator = AchievementEvaluator(self.identity_map, self.tracker)
        self.processor = AchievementEventProcessor(self.evaluator)
        logger.debug("AchievementService initialized")

    async def check_all(self, user_id: str) -> list[str]:
        return await self.evaluator.check_all(user_id)

    async def initialize_achievement(self, user_id: str, achievement_id: str) -> UserAchievementProgress:
        """
        Create (or return) the zero-progress row for one achievement

        Raises:
            MappingUnavailableError: store ids could not be loaded
            UnknownAchievementError: achievement_id is not a catalog achievement
            AchievementError: the row could not be written
        """
        if not await self.identity_map.ensure_loaded():
            raise MappingUnavailableError(user_id=user_id, operation="initialize_achievement")

        if self.identity_map.reverse_resolve(achievement_id) is None:
            raise UnknownAchievementError(
                f"Unknown achievement {achievement_id}",
                achievement=achievement_id,
                user_id=user_id,
                operation="initialize_achievement"
            )

        progress = await self.tracker.initialize(user_id, achievement_id)
        if progress is None:
            raise AchievementError(
                f"Could not initialize achievement {achievement_id}",
                user_id=user_id,
                operation="initialize_achievement"
            )
        return progress

    async def get_user_achievements(self, user_id: str) -> list[UserAchievementProgress]:
        return await self.tracker.list_for_user(user_id)

    async def get_unnotified_achievements(self, user_id: str) -> list[UserAchievementProgress]:
        return await self.tracker.list_unnotified_completed(user_id)

    async def mark_notified(self, user_id: str, achievement_id: str) -> bool:
        return await self.tracker.mark_notified(user_id, achievement_id)

    async def get_user_summary(self, user_id: str) -> AchievementSummary:
        """
        Progress rows joined with their catalog definitions

        Rows whose store id no longer resolves to a definition are left out.
        """
        await self.identity_map.ensure_loaded()
        views = []
        for progress in await self.get_user_achievements(user_id):
            definition = self.identity_map.reverse_resolve(progress.achievement_id)
            if definition is None:
                logger.debug(f"Progress row {progress.achievement_id} has no catalog definition")
                continue
            views.append(AchievementView(
                achievement_id=progress.achievement_id,
                key=definition.key,
                title=definition.title,
                description=definition.description,
                category=definition.category,
                difficulty=definition.difficulty,
                icon=definition.icon,
                points=definition.points,
                secret_until_unlocked=definition.secret_until_unlocked,
                current_value=progress.current_value,
                target_value=progress.target_value,
                completed=progress.completed,
                completed_at=progress.completed_at,
                notified=progress.notified,
            ))

        completed = [v for v in views if v.completed]
        return AchievementSummary(
            user_id=user_id,
            achievements=views,
            total_completed=len(completed),
            total_achievements=len(catalog.list_all()),
            total_points=sum(v.points for v in completed),
        )

    async def enqueue_event(
        self,
        user_id: str,
        event_type: Union[ReadingEventType, str],
        payload: Optional[dict[str, Any]] = None
    ) -> Optional[str]:
        return await self.processor.enqueue(user_id, event_type, payload)

    async def process_batch(self, max_batch: int = ACHIEVEMENT_BATCH_SIZE) -> int:
        return await self.processor.process_batch(max_batch)

    async def seed_catalog(self) -> int:
        """
        Materialize every catalog definition in the store, then reload the identity map

        Returns:
            Number of rows written
        """
        written = 0
        for definition in catalog.list_all():
            row = {
                "title": definition.title,
                "description": definition.description,
                "category": definition.category.value,
                "difficulty": definition.difficulty.value,
                "icon": definition.icon,
                "points": definition.points,
                "secret_until_unlocked": definition.secret_until_unlocked,
                "requirements": definition.requirement.model_dump(mode="json", by_alias=True),
            }
            if await queries.upsert_achievement_row(achievement_id_v1(definition.key), row):
                written += 1

        logger.info(f"Seeded {written} achievement definitions")
        await self.identity_map.reload()
        return written


# Process-wide instance (created on first use)
_service: Optional[AchievementService] = None


def get_achievement_service() -> AchievementService:
    """Get the shared AchievementService instance"""
    global _service
    if _service is None:
        _service = AchievementService()
    return _service


def reset_achievement_service() -> None:
    """Drop the shared instance and its cached identity map"""
    global _service
    _service = None
