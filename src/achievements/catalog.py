"""
Achievement Catalog

The fixed set of achievements compiled into the application. Thresholds and
point values come from here only, never from the store.

Categories:
- milestone: total books read
- genre: distinct genres read
- series: series read end to end
- author: most books read by one author
- consistency: consecutive days with a finished book
"""

from typing import Optional

from src.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementDifficulty,
    AchievementRequirement,
    MetricType,
)


def _define(
    key: str,
    title: str,
    description: str,
    category: AchievementCategory,
    difficulty: AchievementDifficulty,
    icon: str,
    points: int,
    metric_type: MetricType,
    target: int,
) -> AchievementDefinition:
    return AchievementDefinition(
        key=key,
        title=title,
        description=description,
        category=category,
        difficulty=difficulty,
        icon=icon,
        points=points,
        requirement=AchievementRequirement(metric_type=metric_type, target=target),
    )


_C = AchievementCategory
_D = AchievementDifficulty
_M = MetricType

ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # Reading milestones
    _define("books-read-5", "Bookworm", "Read 5 books",
            _C.MILESTONE, _D.BRONZE, "book-open", 10, _M.BOOKS_READ, 5),
    _define("books-read-25", "Book Enthusiast", "Read 25 books",
            _C.MILESTONE, _D.SILVER, "book-open", 25, _M.BOOKS_READ, 25),
    _define("books-read-50", "Book Aficionado", "Read 50 books",
            _C.MILESTONE, _D.GOLD, "book-open", 50, _M.BOOKS_READ, 50),
    _define("books-read-100", "Book Master", "Read 100 books",
            _C.MILESTONE, _D.PLATINUM, "book-open", 100, _M.BOOKS_READ, 100),

    # Genre diversity
    _define("genre-diversity-3", "Genre Explorer", "Read books from 3 different genres",
            _C.GENRE, _D.BRONZE, "compass", 15, _M.UNIQUE_GENRES, 3),
    _define("genre-diversity-5", "Genre Adventurer", "Read books from 5 different genres",
            _C.GENRE, _D.SILVER, "compass", 30, _M.UNIQUE_GENRES, 5),
    _define("genre-diversity-10", "Genre Connoisseur", "Read books from 10 different genres",
            _C.GENRE, _D.GOLD, "compass", 50, _M.UNIQUE_GENRES, 10),

    # Series completion
    _define("series-completion-1", "Series Starter", "Complete 1 book series",
            _C.SERIES, _D.BRONZE, "list-ordered", 20, _M.COMPLETE_SERIES, 1),
    _define("series-completion-3", "Series Enthusiast", "Complete 3 book series",
            _C.SERIES, _D.SILVER, "list-ordered", 40, _M.COMPLETE_SERIES, 3),
    _define("series-completion-5", "Series Master", "Complete 5 book series",
            _C.SERIES, _D.GOLD, "list-ordered", 60, _M.COMPLETE_SERIES, 5),

    # Author collection
    _define("author-collection-3", "Author Fan", "Read 3 books by the same author",
            _C.AUTHOR, _D.BRONZE, "user", 15, _M.SAME_AUTHOR, 3),
    _define("author-collection-5", "Author Devotee", "Read 5 books by the same author",
            _C.AUTHOR, _D.SILVER, "user", 30, _M.SAME_AUTHOR, 5),
    _define("author-collection-10", "Author Expert", "Read 10 books by the same author",
            _C.AUTHOR, _D.GOLD, "user", 50, _M.SAME_AUTHOR, 10),

    # Reading consistency
    _define("reading-streak-7", "Consistent Reader", "Read books on 7 consecutive days",
            _C.CONSISTENCY, _D.BRONZE, "calendar", 20, _M.READING_STREAK, 7),
    _define("reading-streak-30", "Dedicated Reader", "Read books on 30 consecutive days",
            _C.CONSISTENCY, _D.SILVER, "calendar", 50, _M.READING_STREAK, 30),
    _define("reading-streak-100", "Unstoppable Reader", "Read books on 100 consecutive days",
            _C.CONSISTENCY, _D.PLATINUM, "calendar", 100, _M.READING_STREAK, 100),
)

_BY_KEY: dict[str, AchievementDefinition] = {a.key: a for a in ACHIEVEMENTS}

if len(_BY_KEY) != len(ACHIEVEMENTS):
    raise RuntimeError("Duplicate achievement keys in catalog")


def list_all() -> list[AchievementDefinition]:
    """All definitions in catalog order"""
    return list(ACHIEVEMENTS)


def get_by_key(key: str) -> Optional[AchievementDefinition]:
    return _BY_KEY.get(key)


def list_by_category(category: AchievementCategory) -> list[AchievementDefinition]:
    """Definitions for one category, in ascending target order"""
    return sorted(
        (a for a in ACHIEVEMENTS if a.category == category),
        key=lambda a: a.target
    )


def list_by_difficulty(difficulty: AchievementDifficulty) -> list[AchievementDefinition]:
    return [a for a in ACHIEVEMENTS if a.difficulty == difficulty]
