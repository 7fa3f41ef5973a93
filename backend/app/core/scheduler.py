"""
Background scheduler for periodic tasks.

This module manages background jobs that run on a schedule:
- Remove not activated users: Runs every day at 01:00
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError
from app.core.database import SessionLocal
from app.services.user_service import user_service
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def remove_not_activated_users_job():
    """
    Background job deleting accounts that were never activated.

    Users get a few days (NOT_ACTIVATED_RETENTION_DAYS) to follow the
    activation link sent on creation.
    """
    db = SessionLocal()
    try:
        deleted = user_service.remove_not_activated_users(db)
        if deleted > 0:
            logger.info(f"Cleanup job completed: Deleted {deleted} not activated users")
        else:
            logger.info("Cleanup job completed: No stale users found")
    except SQLAlchemyError as e:
        logger.error(f"Error in remove_not_activated_users_job: {str(e)}")
        db.rollback()
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    This should be called when the FastAPI app starts.
    """
    if not scheduler.running:
        scheduler.add_job(
            remove_not_activated_users_job,
            trigger=CronTrigger(hour=1, minute=0),
            id="remove_not_activated_users",
            name="Remove not activated users",
            replace_existing=True
        )

        scheduler.start()
        logger.info("Background scheduler started. User cleanup scheduled daily at 01:00.")


def stop_scheduler():
    """
    Stop the background scheduler.

    This should be called when the FastAPI app shuts down.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
