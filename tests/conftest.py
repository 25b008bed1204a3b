"""Global test fixtures and utilities for reading tracker tests"""
import asyncio
import copy
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional
from uuid import uuid4

import pytest

from src.db import queries
from src.exceptions import QueryError
from src.achievements import catalog
from src.achievements.identifiers import achievement_id_v1
from src.achievements.mapping import AchievementIdentityMap
from src.achievements.service import AchievementService
from src.models.achievement import AchievementDefinition


# ============================================================================
# In-memory store
# ============================================================================

class InMemoryStore:
    """
    Stand-in for the src.db.queries functions

    Honours the same write guards as the SQL: inserts ignore conflicts,
    progress writes only touch incomplete rows, events flip processed once.
    Every call yields to the event loop so concurrent callers interleave.
    """

    QUERY_NAMES = [name for name in queries.__all__ if name != "ACHIEVEMENT_ID_COLUMNS"]

    def __init__(self):
        self.achievement_rows: list[dict] = []
        self.user_achievements: dict[tuple[str, str], dict] = {}
        self.events: list[dict] = []
        self.books_read: dict[str, int] = {}
        self.unique_genres: dict[str, int] = {}
        self.top_author: dict[str, int] = {}
        self.completed_series: dict[str, int] = {}
        self.read_dates: dict[str, list[date]] = {}
        self.failing: set[str] = set()
        self.calls: dict[str, int] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    # -- helpers -------------------------------------------------------------

    async def _enter(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        await asyncio.sleep(0)
        if name in self.failing:
            raise QueryError(f"simulated failure in {name}", operation=name)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def seed_catalog_rows(
        self,
        definitions: Optional[Iterable[AchievementDefinition]] = None,
        id_column: str = "achievement_id"
    ) -> dict[str, str]:
        """Materialize definitions as store rows; returns key -> store id"""
        ids = {}
        for definition in definitions if definitions is not None else catalog.list_all():
            store_id = achievement_id_v1(definition.key)
            self.achievement_rows.append({
                id_column: store_id,
                "title": definition.title,
                "description": definition.description,
                "category": definition.category.value,
                "difficulty": definition.difficulty.value,
                "points": definition.points,
                "requirements": {"type": definition.metric_type.value, "target": definition.target},
            })
            ids[definition.key] = store_id
        return ids

    def set_metrics(self, user_id: str, books_read=0, genres=0, top_author=0, series=0, read_dates=()):
        self.books_read[user_id] = books_read
        self.unique_genres[user_id] = genres
        self.top_author[user_id] = top_author
        self.completed_series[user_id] = series
        self.read_dates[user_id] = list(read_dates)

    def add_event(self, user_id: str, event_type: str, event_data: Optional[dict] = None) -> str:
        event_id = str(uuid4())
        self.events.append({
            "event_id": event_id,
            "user_id": user_id,
            "event_type": event_type,
            "event_data": event_data or {},
            "processed": False,
            "created_at": self._tick(),
        })
        return event_id

    def install(self, monkeypatch) -> None:
        for name in self.QUERY_NAMES:
            monkeypatch.setattr(queries, name, getattr(self, name))

    # -- catalog rows --------------------------------------------------------

    async def get_achievement_rows(self):
        await self._enter("get_achievement_rows")
        return copy.deepcopy(self.achievement_rows)

    async def upsert_achievement_row(self, achievement_id, definition):
        await self._enter("upsert_achievement_row")
        row = {
            "achievement_id": achievement_id,
            "title": definition["title"],
            "description": definition["description"],
            "category": definition["category"],
            "difficulty": definition["difficulty"],
            "icon_path": definition["icon"],
            "points": definition["points"],
            "secret_until_unlocked": definition.get("secret_until_unlocked", False),
            "requirements": dict(definition["requirements"]),
        }
        for index, existing in enumerate(self.achievement_rows):
            if existing.get("achievement_id") == achievement_id:
                self.achievement_rows[index] = row
                return True
        self.achievement_rows.append(row)
        return True

    # -- progress rows -------------------------------------------------------

    async def get_user_achievement(self, user_id, achievement_id):
        await self._enter("get_user_achievement")
        row = self.user_achievements.get((user_id, achievement_id))
        return copy.deepcopy(row) if row else None

    async def insert_user_achievement(self, user_id, achievement_id, target):
        await self._enter("insert_user_achievement")
        key = (user_id, achievement_id)
        if key in self.user_achievements:
            return None
        now = self._tick()
        self.user_achievements[key] = {
            "user_id": user_id,
            "achievement_id": achievement_id,
            "progress": {"current": 0, "target": target},
            "completed": False,
            "completed_at": None,
            "notified": False,
            "created_at": now,
            "updated_at": now,
        }
        return copy.deepcopy(self.user_achievements[key])

    async def update_user_achievement_progress(self, user_id, achievement_id, current, complete):
        await self._enter("update_user_achievement_progress")
        row = self.user_achievements.get((user_id, achievement_id))
        if row is None or row["completed"]:
            return None
        now = self._tick()
        row["progress"]["current"] = current
        row["completed"] = complete
        if complete:
            row["completed_at"] = now
        row["notified"] = False
        row["updated_at"] = now
        return copy.deepcopy(row)

    async def mark_user_achievement_notified(self, user_id, achievement_id):
        await self._enter("mark_user_achievement_notified")
        row = self.user_achievements.get((user_id, achievement_id))
        if row is None:
            return False
        row["notified"] = True
        return True

    async def get_user_achievement_rows(self, user_id):
        await self._enter("get_user_achievement_rows")
        return [copy.deepcopy(r) for (uid, _), r in self.user_achievements.items() if uid == user_id]

    async def get_unnotified_completed_rows(self, user_id):
        await self._enter("get_unnotified_completed_rows")
        return [
            copy.deepcopy(r) for (uid, _), r in self.user_achievements.items()
            if uid == user_id and r["completed"] and not r["notified"]
        ]

    # -- event queue ---------------------------------------------------------

    async def insert_achievement_event(self, user_id, event_type, event_data):
        await self._enter("insert_achievement_event")
        return self.add_event(user_id, event_type, event_data)

    async def get_pending_events(self, limit):
        await self._enter("get_pending_events")
        pending = sorted((e for e in self.events if not e["processed"]), key=lambda e: e["created_at"])
        return [copy.deepcopy(e) for e in pending[:limit]]

    async def mark_event_processed(self, event_id):
        await self._enter("mark_event_processed")
        for event in self.events:
            if event["event_id"] == event_id and not event["processed"]:
                event["processed"] = True
                return True
        return False

    # -- reading aggregates --------------------------------------------------

    async def count_books_read(self, user_id):
        await self._enter("count_books_read")
        return self.books_read.get(user_id, 0)

    async def count_unique_genres(self, user_id):
        await self._enter("count_unique_genres")
        return self.unique_genres.get(user_id, 0)

    async def get_top_author_read_count(self, user_id):
        await self._enter("get_top_author_read_count")
        return self.top_author.get(user_id, 0)

    async def count_completed_series(self, user_id):
        await self._enter("count_completed_series")
        return self.completed_series.get(user_id, 0)

    async def get_read_dates(self, user_id):
        await self._enter("get_read_dates")
        return list(self.read_dates.get(user_id, []))


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store(monkeypatch):
    """Empty in-memory store wired into src.db.queries"""
    memory_store = InMemoryStore()
    memory_store.install(monkeypatch)
    return memory_store


@pytest.fixture
def seeded_store(store):
    """Store with every catalog definition materialized"""
    store.catalog_ids = store.seed_catalog_rows()
    return store


@pytest.fixture
def identity_map():
    return AchievementIdentityMap()


@pytest.fixture
def service(identity_map):
    return AchievementService(identity_map)


@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "0b5f6f3e-8d8a-4b7e-9a51-3c2f1d0e7a11"
