"""
Achievement Progress Tracker

One user_achievements row per (user, achievement). Rows are created at zero
progress on first contact. Completion is one-way: once a row is completed,
later updates leave it untouched, and completed_at is written exactly once.

The completion write is conditional on completed = false in the store, so
concurrent evaluations of the same row report at most one completion.
"""

import logging
from typing import Optional

from src.db import queries
from src.exceptions import ReadingTrackerError, ValidationError
from src.achievements.mapping import AchievementIdentityMap
from src.models.achievement import (
    ProgressUpdate,
    ReadingEventType,
    UserAchievementProgress,
)

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Reads and writes per-user achievement progress"""

    def __init__(self, identity_map: AchievementIdentityMap):
        self.identity_map = identity_map

    async def get(self, user_id: str, achievement_id: str) -> Optional[UserAchievementProgress]:
        if not user_id or not achievement_id:
            return None
        try:
            row = await queries.get_user_achievement(user_id, achievement_id)
        except ReadingTrackerError as e:
            logger.error(f"Error fetching achievement {achievement_id} for user {user_id}: {e}")
            return None
        return UserAchievementProgress.from_row(row) if row else None

    async def initialize(self, user_id: str, achievement_id: str) -> Optional[UserAchievementProgress]:
        """
        Create a zero-progress row unless one exists

        Returns:
            The existing or new row; None if the achievement is unknown or the store failed
        """
        if not user_id or not achievement_id:
            return None

        definition = self.identity_map.reverse_resolve(achievement_id)
        if definition is None:
            logger.warning(f"Cannot initialize unknown achievement {achievement_id}")
            return None

        try:
            row = await queries.insert_user_achievement(user_id, achievement_id, definition.target)
            if row is None:
                # Already present (possibly created by a concurrent caller)
                row = await queries.get_user_achievement(user_id, achievement_id)
        except ReadingTrackerError as e:
            logger.error(f"Error initializing achievement {achievement_id} for user {user_id}: {e}")
            return None

        return UserAchievementProgress.from_row(row) if row else None

    async def update_progress(
        self,
        user_id: str,
        achievement_id: str,
        new_value: int
    ) -> Optional[ProgressUpdate]:
        """
        Record a new metric value

        Args:
            user_id: User UUID
            achievement_id: Store achievement id
            new_value: Current metric value (>= 0)

        Returns:
            ProgressUpdate whose completed_now is True only for the call that
            completed the row; None if the row could not be read or created
        """
        if new_value < 0:
            raise ValidationError("Progress value cannot be negative", field="new_value", value=new_value)

        if self.identity_map.reverse_resolve(achievement_id) is None:
            logger.warning(f"Skipping progress update for unknown achievement {achievement_id}")
            return None

        current = await self.get(user_id, achievement_id)
        if current is None:
            current = await self.initialize(user_id, achievement_id)
            if current is None:
                return None

        if current.completed:
            return ProgressUpdate(progress=current)

        reaches_target = new_value >= current.target_value
        if not reaches_target and new_value == current.current_value:
            return ProgressUpdate(progress=current)

        try:
            row = await queries.update_user_achievement_progress(
                user_id, achievement_id, new_value, reaches_target
            )
        except ReadingTrackerError as e:
            logger.error(f"Error updating achievement {achievement_id} for user {user_id}: {e}")
            return None

        if row is None:
            # Lost the race to a concurrent writer that completed the row first
            latest = await self.get(user_id, achievement_id)
            return ProgressUpdate(progress=latest) if latest else None

        progress = UserAchievementProgress.from_row(row)
        completed_now = reaches_target and progress.completed

        if completed_now:
            logger.info(f"User {user_id} completed achievement {achievement_id} ({new_value}/{progress.target_value})")
            await self._record_unlock(user_id, achievement_id)

        return ProgressUpdate(progress=progress, completed_now=completed_now)

    async def mark_notified(self, user_id: str, achievement_id: str) -> bool:
        if not user_id or not achievement_id:
            return False
        try:
            return await queries.mark_user_achievement_notified(user_id, achievement_id)
        except ReadingTrackerError as e:
            logger.error(f"Error marking achievement {achievement_id} as notified: {e}")
            return False

    async def list_unnotified_completed(self, user_id: str) -> list[UserAchievementProgress]:
        if not user_id:
            return []
        try:
            rows = await queries.get_unnotified_completed_rows(user_id)
        except ReadingTrackerError as e:
            logger.error(f"Error fetching unnotified achievements for user {user_id}: {e}")
            return []
        return [UserAchievementProgress.from_row(row) for row in rows]

    async def list_for_user(self, user_id: str) -> list[UserAchievementProgress]:
        if not user_id:
            return []
        try:
            rows = await queries.get_user_achievement_rows(user_id)
        except ReadingTrackerError as e:
            logger.error(f"Error fetching achievements for user {user_id}: {e}")
            return []
        return [UserAchievementProgress.from_row(row) for row in rows]

    async def _record_unlock(self, user_id: str, achievement_id: str) -> None:
        """Append an achievement_unlocked notification record to the event queue"""
        definition = self.identity_map.reverse_resolve(achievement_id)
        event_data = {
            "achievement_id": achievement_id,
            "achievement_title": definition.title if definition else None,
            "achievement_description": definition.description if definition else None,
            "points": definition.points if definition else 0,
        }
        try:
            await queries.insert_achievement_event(
                user_id, ReadingEventType.ACHIEVEMENT_UNLOCKED.value, event_data
            )
        except ReadingTrackerError as e:
            # The completion itself is already persisted
            logger.error(f"Error recording unlock event for achievement {achievement_id}: {e}")
