"""Reading history aggregates used by achievement metric evaluators"""
import logging
from datetime import date

from src.db.connection import db
from src.db.queries.achievements import _translate_errors

logger = logging.getLogger(__name__)

READ_STATUS = "read"


@_translate_errors
async def count_books_read(user_id: str) -> int:
    """Count books with reading status 'read'"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM reading_status
                WHERE user_id = %s AND status = %s
                """,
                (user_id, READ_STATUS)
            )
            result = await cur.fetchone()
            return result['count'] if result else 0


@_translate_errors
async def count_unique_genres(user_id: str) -> int:
    """Count distinct genres among read books"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(DISTINCT LOWER(bg.genre)) AS count
                FROM reading_status rs
                JOIN book_genres bg ON bg.book_id = rs.book_id
                WHERE rs.user_id = %s AND rs.status = %s
                """,
                (user_id, READ_STATUS)
            )
            result = await cur.fetchone()
            return result['count'] if result else 0


@_translate_errors
async def get_top_author_read_count(user_id: str) -> int:
    """Size of the largest single-author cluster among read books"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT ba.author, COUNT(DISTINCT rs.book_id) AS books_count
                FROM reading_status rs
                JOIN book_authors ba ON ba.book_id = rs.book_id
                WHERE rs.user_id = %s AND rs.status = %s
                GROUP BY ba.author
                ORDER BY books_count DESC
                LIMIT 1
                """,
                (user_id, READ_STATUS)
            )
            result = await cur.fetchone()
            return result['books_count'] if result else 0


@_translate_errors
async def count_completed_series(user_id: str) -> int:
    """Count series in which every book has been read"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM (
                    SELECT b.series_id
                    FROM books b
                    LEFT JOIN reading_status rs
                        ON rs.book_id = b.book_id AND rs.user_id = %s AND rs.status = %s
                    WHERE b.series_id IS NOT NULL
                    GROUP BY b.series_id
                    HAVING COUNT(rs.book_id) = COUNT(*)
                ) completed
                """,
                (user_id, READ_STATUS)
            )
            result = await cur.fetchone()
            return result['count'] if result else 0


@_translate_errors
async def get_read_dates(user_id: str) -> list[date]:
    """Distinct calendar days on which the user finished a book, ascending"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT (date_added AT TIME ZONE 'UTC')::date AS read_date
                FROM reading_status
                WHERE user_id = %s AND status = %s AND date_added IS NOT NULL
                ORDER BY read_date ASC
                """,
                (user_id, READ_STATUS)
            )
            rows = await cur.fetchall()
            return [row['read_date'] for row in rows]
