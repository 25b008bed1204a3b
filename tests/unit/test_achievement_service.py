"""Unit tests for AchievementService (src/achievements/service.py)"""
import pytest

from src.achievements import catalog
from src.achievements.identifiers import achievement_id_v1
from src.achievements.mapping import AchievementIdentityMap
from src.achievements.service import (
    AchievementService,
    get_achievement_service,
    reset_achievement_service,
)
from src.exceptions import (
    AchievementError,
    MappingUnavailableError,
    UnknownAchievementError,
)
from src.models.achievement import ReadingEventType


# ============================================================================
# Catalog seeding
# ============================================================================

@pytest.mark.asyncio
async def test_seed_catalog_writes_every_definition(store, service):
    written = await service.seed_catalog()

    assert written == len(catalog.list_all())
    assert len(store.achievement_rows) == written
    for definition in catalog.list_all():
        assert service.identity_map.resolve(definition.key) == achievement_id_v1(definition.key)


@pytest.mark.asyncio
async def test_seed_catalog_is_repeatable(store, service):
    await service.seed_catalog()
    await service.seed_catalog()

    assert len(store.achievement_rows) == len(catalog.list_all())


@pytest.mark.asyncio
async def test_seeded_rows_carry_requirements_and_icon(store, service):
    await service.seed_catalog()

    row = next(r for r in store.achievement_rows if r["title"] == "Bookworm")
    assert row["requirements"] == {"type": "books_read", "target": 5}
    assert row["icon_path"] == catalog.get_by_key("books-read-5").icon
    assert row["category"] == "milestone"
    assert row["secret_until_unlocked"] is False


# ============================================================================
# Evaluation and notifications
# ============================================================================

@pytest.mark.asyncio
async def test_notification_flow(seeded_store, service, test_user_id):
    seeded_store.set_metrics(test_user_id, books_read=5)

    unlocked = await service.check_all(test_user_id)
    pending = await service.get_unnotified_achievements(test_user_id)

    assert [p.achievement_id for p in pending] == unlocked

    assert await service.mark_notified(test_user_id, unlocked[0]) is True
    assert await service.get_unnotified_achievements(test_user_id) == []


@pytest.mark.asyncio
async def test_initialize_achievement(seeded_store, service, test_user_id):
    bookworm_id = seeded_store.catalog_ids["books-read-5"]

    progress = await service.initialize_achievement(test_user_id, bookworm_id)

    assert progress.current_value == 0
    assert progress.target_value == 5


@pytest.mark.asyncio
async def test_initialize_achievement_without_identity_map(seeded_store, service, test_user_id):
    seeded_store.failing.add("get_achievement_rows")

    with pytest.raises(MappingUnavailableError):
        await service.initialize_achievement(test_user_id, seeded_store.catalog_ids["books-read-5"])


@pytest.mark.asyncio
async def test_initialize_unknown_achievement(seeded_store, service, test_user_id):
    with pytest.raises(UnknownAchievementError) as exc_info:
        await service.initialize_achievement(test_user_id, "not-an-achievement")

    assert exc_info.value.achievement == "not-an-achievement"
    assert seeded_store.user_achievements == {}


@pytest.mark.asyncio
async def test_initialize_achievement_store_failure(seeded_store, service, test_user_id):
    seeded_store.failing.add("insert_user_achievement")

    with pytest.raises(AchievementError):
        await service.initialize_achievement(test_user_id, seeded_store.catalog_ids["books-read-5"])


@pytest.mark.asyncio
async def test_user_summary_totals_points(seeded_store, service, test_user_id):
    seeded_store.set_metrics(test_user_id, books_read=25, genres=3)
    await service.check_all(test_user_id)

    summary = await service.get_user_summary(test_user_id)

    assert summary.user_id == test_user_id
    assert summary.total_achievements == len(catalog.list_all())
    assert summary.total_completed == 3
    # Bookworm (10) + Book Enthusiast (25) + Genre Explorer (15)
    assert summary.total_points == 10 + 25 + 15
    keys = {view.key for view in summary.achievements}
    assert keys == {"books-read-5", "books-read-25", "genre-diversity-3"}


@pytest.mark.asyncio
async def test_user_summary_exposes_secret_flag(seeded_store, test_user_id):
    definitions = [
        d.model_copy(update={"secret_until_unlocked": True}) if d.key == "books-read-5" else d
        for d in catalog.list_all()
    ]
    service = AchievementService(AchievementIdentityMap(definitions))
    seeded_store.set_metrics(test_user_id, books_read=5)
    await service.check_all(test_user_id)

    summary = await service.get_user_summary(test_user_id)

    assert [(v.key, v.secret_until_unlocked) for v in summary.achievements] == [("books-read-5", True)]


@pytest.mark.asyncio
async def test_user_summary_drops_unknown_rows(seeded_store, service, test_user_id):
    seeded_store.user_achievements[(test_user_id, "retired")] = {
        "user_id": test_user_id,
        "achievement_id": "retired",
        "progress": {"current": 1, "target": 1},
        "completed": True,
        "completed_at": None,
        "notified": True,
    }

    summary = await service.get_user_summary(test_user_id)

    assert summary.achievements == []
    assert summary.total_points == 0


# ============================================================================
# Event queue
# ============================================================================

@pytest.mark.asyncio
async def test_enqueue_then_process(seeded_store, service, test_user_id):
    seeded_store.set_metrics(test_user_id, books_read=5)

    await service.enqueue_event(test_user_id, ReadingEventType.BOOK_COMPLETED, {"book_id": "b1"})
    assert await service.process_batch(10) == 1

    pending = await service.get_unnotified_achievements(test_user_id)
    assert [p.achievement_id for p in pending] == [seeded_store.catalog_ids["books-read-5"]]


# ============================================================================
# Shared instance
# ============================================================================

def test_shared_instance_is_reused():
    reset_achievement_service()
    try:
        first = get_achievement_service()
        assert get_achievement_service() is first

        reset_achievement_service()
        assert get_achievement_service() is not first
    finally:
        reset_achievement_service()


def test_service_wires_one_identity_map():
    service = AchievementService()

    assert service.tracker.identity_map is service.identity_map
    assert service.evaluator.identity_map is service.identity_map
    assert service.processor.evaluator is service.evaluator
