"""
Achievement Identity Map

Resolves catalog keys (e.g. 'books-read-5') to the identifiers the store
assigned when the definition was materialized in the achievements table.

A store row matches a definition when its title equals the definition title,
or when its requirements carry the same metric type and target. The first
matching row wins.

The map is built once per instance and kept until reload() is called.
"""

import json
import logging
from typing import Any, Iterable, Optional

from src.db import queries
from src.achievements import catalog
from src.models.achievement import AchievementDefinition

logger = logging.getLogger(__name__)


def _row_identifier(row: dict[str, Any]) -> Optional[str]:
    for column in queries.ACHIEVEMENT_ID_COLUMNS:
        if row.get(column) is not None:
            return str(row[column])
    return None


def _row_requirements(row: dict[str, Any]) -> dict[str, Any]:
    requirements = row.get("requirements") or {}
    if isinstance(requirements, str):
        try:
            requirements = json.loads(requirements)
        except ValueError:
            return {}
    return requirements if isinstance(requirements, dict) else {}


def _matches(row: dict[str, Any], definition: AchievementDefinition) -> bool:
    if row.get("title") == definition.title:
        return True
    requirements = _row_requirements(row)
    return (
        requirements.get("type") == definition.metric_type.value
        and requirements.get("target") == definition.target
    )


class AchievementIdentityMap:
    """Process-wide key <-> store id cache with an explicit load lifecycle"""

    def __init__(self, definitions: Optional[Iterable[AchievementDefinition]] = None):
        self._definitions = list(definitions) if definitions is not None else catalog.list_all()
        self._key_to_id: dict[str, str] = {}
        self._id_to_key: dict[str, str] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def ensure_loaded(self) -> bool:
        """
        Load the map on first use

        Returns:
            True if the map is usable, False if the store could not be read
        """
        if self._loaded:
            return True
        return await self.reload()

    async def reload(self) -> bool:
        """Rebuild the map from the store, replacing any cached entries"""
        try:
            rows = await queries.get_achievement_rows()
        except Exception as e:
            logger.error(f"Error loading achievement identifiers: {e}", exc_info=True)
            return False

        key_to_id: dict[str, str] = {}
        id_to_key: dict[str, str] = {}

        for definition in self._definitions:
            match = next((row for row in rows if _matches(row, definition)), None)
            store_id = _row_identifier(match) if match else None

            if store_id is None:
                logger.warning(f"No stored achievement matches '{definition.key}'")
                continue

            key_to_id[definition.key] = store_id
            if store_id in id_to_key:
                logger.warning(
                    f"Achievement '{definition.key}' maps to {store_id}, "
                    f"already used by '{id_to_key[store_id]}'"
                )
            else:
                id_to_key[store_id] = definition.key

        self._key_to_id = key_to_id
        self._id_to_key = id_to_key
        self._loaded = True

        logger.info(
            f"Loaded achievement identifiers: {len(key_to_id)}/{len(self._definitions)} "
            f"mapped from {len(rows)} stored rows"
        )
        return True

    def reset(self) -> None:
        """Forget the cached map; the next ensure_loaded() re-queries the store"""
        self._key_to_id = {}
        self._id_to_key = {}
        self._loaded = False

    def resolve(self, key: str) -> Optional[str]:
        return self._key_to_id.get(key)

    def reverse_resolve(self, store_id: str) -> Optional[AchievementDefinition]:
        key = self._id_to_key.get(str(store_id))
        if key is None:
            return None
        return next((d for d in self._definitions if d.key == key), None)
