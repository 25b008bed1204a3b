"""Main entry point for the achievement event worker

Drains the achievement event queue on a fixed interval. Run alongside (or
instead of) a scheduler hitting POST /api/v1/achievements/process-events.

    python -m src.main            # poll forever
    ACHIEVEMENT_WORKER_ONCE=true python -m src.main   # drain once and exit
"""
import logging
import asyncio
from src.config import (
    validate_config,
    LOG_LEVEL,
    ACHIEVEMENT_BATCH_SIZE,
    ACHIEVEMENT_POLL_INTERVAL_SECONDS,
    ACHIEVEMENT_WORKER_ONCE,
)
from src.db.connection import db
from src.achievements.service import AchievementService

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


async def drain_queue(service: AchievementService, batch_size: int = ACHIEVEMENT_BATCH_SIZE) -> int:
    """Process full batches until the queue has fewer than batch_size pending events"""
    total = 0
    while True:
        processed = await service.process_batch(batch_size)
        total += processed
        if processed < batch_size:
            return total


async def main() -> None:
    """Main application entry point"""
    try:
        # Validate configuration
        logger.info("Validating configuration...")
        validate_config()

        # Initialize database
        logger.info("Initializing database connection pool...")
        await db.init_pool()

        service = AchievementService()
        if not await service.identity_map.ensure_loaded():
            logger.warning("Achievement identifiers unavailable; evaluations will be skipped until the store responds")

        if ACHIEVEMENT_WORKER_ONCE:
            total = await drain_queue(service)
            logger.info(f"Drained {total} achievement events")
            return

        logger.info(f"Worker polling every {ACHIEVEMENT_POLL_INTERVAL_SECONDS}s. Press Ctrl+C to stop.")
        while True:
            total = await drain_queue(service)
            if total:
                logger.info(f"Drained {total} achievement events")
            await asyncio.sleep(ACHIEVEMENT_POLL_INTERVAL_SECONDS)

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Closing database connection...")
        await db.close_pool()

        logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
