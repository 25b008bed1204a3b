"""Achievement database queries"""
import json
import logging
from functools import wraps
from typing import Optional

import psycopg

from src.db.connection import db
from src.exceptions import wrap_database_exception

logger = logging.getLogger(__name__)

# Older seed scripts created the catalog table with "id" instead of "achievement_id"
ACHIEVEMENT_ID_COLUMNS = ("achievement_id", "id")

USER_ACHIEVEMENT_COLUMNS = """
    user_id, achievement_id, progress, completed, completed_at, notified, created_at, updated_at
"""


def _translate_errors(func):
    """Re-raise psycopg errors as QueryError tagged with the query function name"""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except psycopg.Error as e:
            raise wrap_database_exception(e, operation=func.__name__) from e
    return wrapper


# ==========================================
# Achievement Catalog Rows
# ==========================================

@_translate_errors
async def get_achievement_rows() -> list[dict]:
    """
    Get every achievement row materialized in the store

    Selects all columns because the identifier column name varies between
    deployments (see ACHIEVEMENT_ID_COLUMNS).
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SELECT * FROM achievements")
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@_translate_errors
async def upsert_achievement_row(achievement_id: str, definition: dict) -> bool:
    """
    Insert or refresh one catalog row keyed by its identifier

    Args:
        achievement_id: Deterministic UUID for the definition
        definition: Dict with title, description, category, difficulty, icon, points,
                secret_until_unlocked, requirements

    Returns:
        True if a row was written
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO achievements
                    (achievement_id, title, description, category, difficulty, icon_path, points,
                     secret_until_unlocked, requirements)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (achievement_id) DO UPDATE
                SET title = EXCLUDED.title,
                    description = EXCLUDED.description,
                    category = EXCLUDED.category,
                    difficulty = EXCLUDED.difficulty,
                    icon_path = EXCLUDED.icon_path,
                    points = EXCLUDED.points,
                    secret_until_unlocked = EXCLUDED.secret_until_unlocked,
                    requirements = EXCLUDED.requirements,
                    updated_at = CURRENT_TIMESTAMP
                RETURNING achievement_id
                """,
                (
                    achievement_id,
                    definition['title'],
                    definition['description'],
                    definition['category'],
                    definition['difficulty'],
                    definition['icon'],
                    definition['points'],
                    definition.get("secret_until_unlocked", False),
                    json.dumps(definition['requirements'])
                )
            )
            result = await cur.fetchone()
            await conn.commit()
            return result is not None


# ==========================================
# User Progress Rows
# ==========================================

@_translate_errors
async def get_user_achievement(user_id: str, achievement_id: str) -> Optional[dict]:
    """Get one user_achievements row, or None"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {USER_ACHIEVEMENT_COLUMNS}
                FROM user_achievements
                WHERE user_id = %s AND achievement_id = %s
                """,
                (user_id, achievement_id)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


@_translate_errors
async def insert_user_achievement(user_id: str, achievement_id: str, target: int) -> Optional[dict]:
    """
    Create a zero-progress row

    Returns:
        The new row, or None if a row for (user_id, achievement_id) already existed
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO user_achievements (user_id, achievement_id, progress, completed, notified)
                VALUES (%s, %s, %s, false, false)
                ON CONFLICT (user_id, achievement_id) DO NOTHING
                RETURNING {USER_ACHIEVEMENT_COLUMNS}
                """,
                (user_id, achievement_id, json.dumps({"current": 0, "target": target}))
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


@_translate_errors
async def update_user_achievement_progress(
    user_id: str,
    achievement_id: str,
    current: int,
    complete: bool
) -> Optional[dict]:
    """
    Write a new progress value to an incomplete row

    The write is guarded by completed = false, so of two racing writers that
    both pass complete=True only one gets a row back.

    Args:
        user_id: User UUID
        achievement_id: Store achievement id
        current: New metric value
        complete: Whether this write completes the achievement

    Returns:
        Updated row, or None if the row is missing or already completed
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE user_achievements
                SET progress = jsonb_set(progress, '{{current}}', to_jsonb(%s::int)),
                    completed = %s,
                    completed_at = CASE WHEN %s THEN CURRENT_TIMESTAMP ELSE completed_at END,
                    notified = false,
                    updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s AND achievement_id = %s AND completed = false
                RETURNING {USER_ACHIEVEMENT_COLUMNS}
                """,
                (current, complete, complete, user_id, achievement_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


@_translate_errors
async def mark_user_achievement_notified(user_id: str, achievement_id: str) -> bool:
    """Set notified = true; returns False when no such row exists"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_achievements
                SET notified = true, updated_at = CURRENT_TIMESTAMP
                WHERE user_id = %s AND achievement_id = %s
                """,
                (user_id, achievement_id)
            )
            await conn.commit()
            return cur.rowcount > 0


@_translate_errors
async def get_user_achievement_rows(user_id: str) -> list[dict]:
    """Get every progress row for a user"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {USER_ACHIEVEMENT_COLUMNS}
                FROM user_achievements
                WHERE user_id = %s
                ORDER BY completed DESC, completed_at DESC NULLS LAST
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@_translate_errors
async def get_unnotified_completed_rows(user_id: str) -> list[dict]:
    """Get completed rows not yet shown to the user"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {USER_ACHIEVEMENT_COLUMNS}
                FROM user_achievements
                WHERE user_id = %s AND completed = true AND notified = false
                ORDER BY completed_at ASC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


# ==========================================
# Event Queue
# ==========================================

@_translate_errors
async def insert_achievement_event(user_id: str, event_type: str, event_data: dict) -> Optional[str]:
    """
    Append a pending event

    Returns:
        Event ID (UUID string)
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO achievement_events (user_id, event_type, event_data, processed)
                VALUES (%s, %s, %s, false)
                RETURNING event_id
                """,
                (user_id, event_type, json.dumps(event_data))
            )
            result = await cur.fetchone()
            await conn.commit()
            return str(result['event_id']) if result else None


@_translate_errors
async def get_pending_events(limit: int) -> list[dict]:
    """Get up to `limit` unprocessed events, oldest first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT event_id, user_id, event_type, event_data, processed, created_at
                FROM achievement_events
                WHERE processed = false
                ORDER BY created_at ASC
                LIMIT %s
                """,
                (limit,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@_translate_errors
async def mark_event_processed(event_id: str) -> bool:
    """
    Flip processed false -> true

    Returns:
        True only if this call performed the transition
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE achievement_events
                SET processed = true
                WHERE event_id = %s AND processed = false
                """,
                (event_id,)
            )
            await conn.commit()
            return cur.rowcount > 0
