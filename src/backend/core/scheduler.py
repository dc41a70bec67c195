"""
Background task scheduler for periodic jobs.
Uses APScheduler to purge expired customer sessions, standing in for a
store-level TTL index.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.database import get_background_session
from repositories.session_repository import SessionRepository

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def cleanup_expired_sessions_job() -> int:
    """
    Background job to delete sessions past their expiry.
    Runs every SECURITY_SESSION_CLEANUP_INTERVAL_MINUTES.

    Returns:
        Number of sessions removed (0 when the run failed)
    """
    logger.debug("Running expired session cleanup...")

    try:
        async with get_background_session() as db:
            count = await SessionRepository.delete_expired(db)
    except Exception as e:
        logger.error(f"Scheduled session cleanup job failed: {str(e)}", exc_info=True)
        return 0

    if count > 0:
        logger.info(f"Expired session cleanup completed: {count} sessions removed")
    return count


def start_scheduler() -> None:
    """Start the background scheduler with all jobs."""
    logger.info("Starting APScheduler for background tasks...")

    interval = settings.security.session_cleanup_interval_minutes
    scheduler.add_job(
        cleanup_expired_sessions_job,
        trigger=IntervalTrigger(minutes=interval),
        id="session_cleanup",
        replace_existing=True,
        max_instances=1,
        name="Expired Session Cleanup",
    )

    scheduler.start()
    logger.info(f"APScheduler started with jobs: session cleanup ({interval}m)")


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler shut down successfully")
