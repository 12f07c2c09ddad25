# File: app/core/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")


def sweep_expired_sessions():
    """Drop expired records from the session store"""
    from app.core.session_store import session_store

    try:
        session_store.sweep()
    except Exception as e:
        logger.error(f"Error in session sweep job: {e}")


def start_scheduler():
    """Start all scheduled jobs"""
    from app.services.activity_status_updater import run_activity_status_job, run_finalize_job

    try:
        scheduler.add_job(
            sweep_expired_sessions,
            trigger=IntervalTrigger(seconds=settings.SESSION_SWEEP_INTERVAL_SECONDS),
            id='session_sweep',
            name='Remove expired sessions',
            replace_existing=True
        )

        # Move activities through ongoing and completed
        scheduler.add_job(
            run_activity_status_job,
            trigger=IntervalTrigger(seconds=settings.ACTIVITY_STATUS_INTERVAL_SECONDS),
            id='activity_status_update',
            name='Update activity statuses',
            replace_existing=True,
            max_instances=1
        )

        # Complete checked-out participations and mark no-shows
        scheduler.add_job(
            run_finalize_job,
            trigger=IntervalTrigger(seconds=settings.FINALIZE_INTERVAL_SECONDS),
            id='participation_finalize',
            name='Finalize ended activities',
            replace_existing=True,
            max_instances=1
        )

        scheduler.start()
        logger.info("Scheduler started successfully")
        logger.info(f"Active jobs: {len(scheduler.get_jobs())}")
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")


def stop_scheduler():
    """Stop scheduler gracefully"""
    try:
        if scheduler.running:
            scheduler.shutdown()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")
