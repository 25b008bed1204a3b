"""
Reading achievements

Gamified badges unlocked by reading behaviour:
- Catalog of achievement definitions
- Identity map from catalog keys to store ids
- Per-user progress with one-way completion
- Metric evaluators (books read, genres, authors, series, streaks)
- Event queue processor
"""

from src.achievements.mapping import AchievementIdentityMap
from src.achievements.progress import ProgressTracker
from src.achievements.evaluators import AchievementEvaluator, current_reading_streak
from src.achievements.processor import AchievementEventProcessor
from src.achievements.service import AchievementService, get_achievement_service

__all__ = [
    "AchievementIdentityMap",
    "ProgressTracker",
    "AchievementEvaluator",
    "current_reading_streak",
    "AchievementEventProcessor",
    "AchievementService",
    "get_achievement_service",
]
