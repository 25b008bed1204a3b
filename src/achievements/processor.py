"""
Achievement Event Queue Processor

Consumes reading-activity events oldest first and re-evaluates achievements
for the affected user. Each event is marked processed whether or not its
evaluation succeeded, so a failing event never blocks the queue. Delivery is
at-least-once; re-running check_all for a user is harmless.
"""

import logging
from typing import Any, Optional, Union

from src.config import ACHIEVEMENT_BATCH_SIZE
from src.db import queries
from src.exceptions import ValidationError
from src.achievements.evaluators import AchievementEvaluator
from src.models.achievement import AchievementEvent, ReadingEventType

logger = logging.getLogger(__name__)

# Event types that trigger a full re-evaluation
REEVALUATION_EVENTS = frozenset({
    ReadingEventType.STATUS_CHANGED_TO_READ,
    ReadingEventType.BOOK_COMPLETED,
})


class AchievementEventProcessor:
    """Batch worker over the achievement_events table"""

    def __init__(self, evaluator: AchievementEvaluator):
        self.evaluator = evaluator

    async def enqueue(
        self,
        user_id: str,
        event_type: Union[ReadingEventType, str],
        payload: Optional[dict[str, Any]] = None
    ) -> Optional[str]:
        """
        Append a pending event

        Returns:
            The new event id
        """
        if not user_id:
            raise ValidationError("user_id is required", field="user_id", value=user_id)

        tag = event_type.value if isinstance(event_type, ReadingEventType) else event_type
        if not tag:
            raise ValidationError("event_type is required", field="event_type", value=event_type)

        event_id = await queries.insert_achievement_event(user_id, tag, payload or {})
        logger.debug(f"Queued {tag} event {event_id} for user {user_id}")
        return event_id

    async def process_batch(self, max_batch: int = ACHIEVEMENT_BATCH_SIZE) -> int:
        """
        Process up to max_batch pending events

        Returns:
            Number of events this call marked processed
        """
        if max_batch <= 0:
            raise ValidationError("max_batch must be positive", field="max_batch", value=max_batch)

        try:
            rows = await queries.get_pending_events(max_batch)
        except Exception as e:
            logger.error(f"Error fetching achievement events: {e}", exc_info=True)
            return 0

        if not rows:
            return 0

        processed_count = 0
        for row in rows:
            event_id = str(row["event_id"])

            try:
                await self._handle(AchievementEvent.from_row(row))
            except Exception as e:
                # Malformed rows land here too and are still marked below
                logger.error(f"Error processing event {event_id}: {e}", exc_info=True)

            try:
                if await queries.mark_event_processed(event_id):
                    processed_count += 1
                else:
                    logger.debug(f"Event {event_id} was already marked processed")
            except Exception as e:
                logger.error(f"Error marking event {event_id} as processed: {e}", exc_info=True)

        logger.info(f"Processed {processed_count}/{len(rows)} achievement events")
        return processed_count

    async def _handle(self, event: AchievementEvent) -> None:
        event_type = ReadingEventType.parse(event.event_type)

        if event_type is None:
            logger.warning(f"Unknown event type: {event.event_type} (event {event.event_id})")
            return

        if event_type in REEVALUATION_EVENTS:
            unlocked = await self.evaluator.check_all(event.user_id)
            logger.debug(f"Event {event.event_id}: {len(unlocked)} achievement(s) unlocked")
        elif event_type is ReadingEventType.ACHIEVEMENT_UNLOCKED:
            # Notification record written by the tracker; nothing to re-evaluate
            return
