"""
Achievement Metric Evaluators

Each evaluator computes one scalar from a user's reading history:
- milestone: books with status 'read'
- genre: distinct genres among read books
- author: largest number of read books sharing one author
- series: series read end to end
- consistency: reading streak in days

AchievementEvaluator feeds each value into the progress tracker for every
catalog tier the value has reached. Values are always recomputed from the
store, so evaluating twice without new reading activity changes nothing.
"""

from datetime import date, timedelta
from typing import Awaitable, Callable, Iterable, Optional
import logging

from src.db import queries
from src.achievements import catalog
from src.achievements.mapping import AchievementIdentityMap
from src.achievements.progress import ProgressTracker
from src.models.achievement import AchievementCategory, AchievementDefinition

logger = logging.getLogger(__name__)


def current_reading_streak(read_dates: Iterable[date]) -> int:
    """
    Length of the run of consecutive days that ends on the most recent reading day

    Example:
        days 1, 2, 3, 5, 6, 7, 8 -> 4 (days 5-8)
    """
    days = sorted(set(read_dates), reverse=True)
    if not days:
        return 0

    streak = 1
    for previous, current in zip(days, days[1:]):
        if previous - current != timedelta(days=1):
            break
        streak += 1
    return streak


# ============================================
# Metric Evaluators
# ============================================

async def evaluate_books_read(user_id: str) -> int:
    return await queries.count_books_read(user_id)


async def evaluate_genre_diversity(user_id: str) -> int:
    return await queries.count_unique_genres(user_id)


async def evaluate_author_concentration(user_id: str) -> int:
    return await queries.get_top_author_read_count(user_id)


async def evaluate_series_completion(user_id: str) -> int:
    return await queries.count_completed_series(user_id)


async def evaluate_reading_streak(user_id: str) -> int:
    read_dates = await queries.get_read_dates(user_id)
    return current_reading_streak(read_dates)


MetricFunction = Callable[[str], Awaitable[int]]

# Evaluation order for check_all
EVALUATORS: dict[AchievementCategory, MetricFunction] = {
    AchievementCategory.MILESTONE: evaluate_books_read,
    AchievementCategory.GENRE: evaluate_genre_diversity,
    AchievementCategory.AUTHOR: evaluate_author_concentration,
    AchievementCategory.SERIES: evaluate_series_completion,
    AchievementCategory.CONSISTENCY: evaluate_reading_streak,
}


class AchievementEvaluator:
    """Runs metric evaluators and records progress for reached tiers"""

    def __init__(
        self,
        identity_map: AchievementIdentityMap,
        tracker: ProgressTracker,
        definitions: Optional[Iterable[AchievementDefinition]] = None,
        evaluators: Optional[dict[AchievementCategory, MetricFunction]] = None
    ):
        self.identity_map = identity_map
        self.tracker = tracker
        self.definitions = list(definitions) if definitions is not None else catalog.list_all()
        self.evaluators = evaluators if evaluators is not None else EVALUATORS

    def _definitions_for(self, category: AchievementCategory) -> list[AchievementDefinition]:
        return sorted(
            (d for d in self.definitions if d.category == category),
            key=lambda d: d.target
        )

    async def evaluate_category(self, user_id: str, category: AchievementCategory) -> list[str]:
        """
        Evaluate one category for a user

        Returns:
            Store ids of achievements completed by this run
        """
        evaluate = self.evaluators.get(category)
        if evaluate is None:
            logger.warning(f"No evaluator registered for category {category.value}")
            return []

        try:
            value = await evaluate(user_id)
        except Exception as e:
            logger.error(f"Error evaluating {category.value} achievements for user {user_id}: {e}", exc_info=True)
            return []

        unlocked = []
        for definition in self._definitions_for(category):
            if definition.target > value:
                continue

            achievement_id = self.identity_map.resolve(definition.key)
            if not achievement_id:
                logger.warning(f"No store id for achievement '{definition.key}', skipping")
                continue

            await self.tracker.initialize(user_id, achievement_id)
            update = await self.tracker.update_progress(user_id, achievement_id, value)

            if update and update.completed_now and not update.progress.notified:
                unlocked.append(achievement_id)

        return unlocked

    async def check_all(self, user_id: str) -> list[str]:
        """
        Evaluate every category for a user

        Returns:
            Store ids unlocked by this run; empty if the identity map is unavailable
        """
        if not user_id:
            return []

        if not await self.identity_map.ensure_loaded():
            logger.warning(f"Achievement identity map unavailable, skipping checks for user {user_id}")
            return []

        unlocked = []
        for category in self.evaluators:
            unlocked.extend(await self.evaluate_category(user_id, category))

        if unlocked:
            logger.info(f"User {user_id} unlocked {len(unlocked)} achievement(s)")
        return unlocked
