"""
Periodic Firebase sync and retention cleanup
"""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging
import asyncio

from ecotrack.database import SessionLocal, settings
from ecotrack.services.retention import cleanup_old_data

logger = logging.getLogger(__name__)
scheduler = BackgroundScheduler()

def run_firebase_sync():
    """Run one sync tick from the scheduler thread"""
    from ecotrack.dependencies import get_sync_service
    from ecotrack.routers.events import publish_event

    try:
        result = asyncio.run(get_sync_service().run_tick())
    except Exception as e:
        logger.error(f"Error in scheduled Firebase sync: {str(e)}")
        return

    if result.skipped:
        return
    if result.success:
        logger.info(f"Scheduled sync: {result.count} sources synced {result.synced}")
    else:
        logger.warning(f"Scheduled sync failed: {result.error}")
    publish_event({"type": "sync", **result.model_dump(mode="json")})

def run_retention_cleanup():
    db = SessionLocal()
    try:
        cleanup_old_data(db, settings.retention_days)
    except Exception as e:
        logger.error(f"Error in scheduled retention cleanup: {str(e)}")
    finally:
        db.close()

def start_scheduler():
    """Start the sync and cleanup jobs"""
    if not scheduler.running:
        scheduler.add_job(
            run_firebase_sync,
            IntervalTrigger(seconds=settings.sync_interval_seconds),
            id='firebase_sync',
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        if settings.cleanup_interval_hours > 0:
            scheduler.add_job(
                run_retention_cleanup,
                IntervalTrigger(hours=settings.cleanup_interval_hours),
                id='retention_cleanup',
                replace_existing=True,
                max_instances=1,
                coalesce=True
            )
        scheduler.start()
        logger.info(f"Sync scheduler started (interval: {settings.sync_interval_seconds} seconds)")

def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Sync scheduler stopped")
