"""
Database queries - Re-export all functions.

Callers use `from src.db import queries` and call `queries.<name>(...)`, which
keeps every store call patchable in one namespace.

Module organization:
- achievements.py: Catalog rows, user progress rows, achievement event queue
- reading.py: Reading history aggregates for metric evaluators
"""

# Achievement operations
from src.db.queries.achievements import (
    ACHIEVEMENT_ID_COLUMNS,
    get_achievement_rows,
    upsert_achievement_row,
    get_user_achievement,
    insert_user_achievement,
    update_user_achievement_progress,
    mark_user_achievement_notified,
    get_user_achievement_rows,
    get_unnotified_completed_rows,
    insert_achievement_event,
    get_pending_events,
    mark_event_processed,
)

# Reading history aggregates
from src.db.queries.reading import (
    count_books_read,
    count_unique_genres,
    get_top_author_read_count,
    count_completed_series,
    get_read_dates,
)

__all__ = [
    "ACHIEVEMENT_ID_COLUMNS",
    "get_achievement_rows",
    "upsert_achievement_row",
    "get_user_achievement",
    "insert_user_achievement",
    "update_user_achievement_progress",
    "mark_user_achievement_notified",
    "get_user_achievement_rows",
    "get_unnotified_completed_rows",
    "insert_achievement_event",
    "get_pending_events",
    "mark_event_processed",
    "count_books_read",
    "count_unique_genres",
    "get_top_author_read_count",
    "count_completed_series",
    "get_read_dates",
]
