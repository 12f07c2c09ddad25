# File: app/services/activity_status_updater.py
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from app import crud
from app.core.security import utcnow
from app.db.database import SessionLocal
from app.models.activity import ActivityStatus
from app.services import participation_state_machine as state_machine
import logging

logger = logging.getLogger(__name__)


def update_activity_statuses(db: Session, now: Optional[datetime] = None) -> dict:
    """Move activities into ongoing when they start and into completed when they end.

    Cancelled activities are never touched.
    """
    now = now or utcnow()
    started = 0
    ended = 0

    for activity in crud.activity.get_due_to_start(db, now=now):
        logger.info(f"Activity {activity.id} '{activity.title}' is now ongoing")
        activity.status = ActivityStatus.ONGOING
        started += 1

    for activity in crud.activity.get_due_to_end(db, now=now):
        logger.info(f"Activity {activity.id} '{activity.title}' has completed")
        activity.status = ActivityStatus.COMPLETED
        ended += 1

    if started or ended:
        db.commit()
    return {"started": started, "ended": ended}


def finalize_ended_activities(db: Session, now: Optional[datetime] = None) -> int:
    """Finalize completed activities that still have open participations. Safe to run repeatedly."""
    now = now or utcnow()
    finalized = 0

    activities = crud.activity.get_unfinalized(db, ended_before=now)
    for activity in activities:
        try:
            summary = state_machine.finalize(db, activity, now)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to finalize activity {activity.id}: {e}")
            continue
        if summary.completed or summary.no_show:
            finalized += 1

    return finalized


def run_activity_status_job():
    """Scheduler entry point"""
    db = SessionLocal()
    try:
        result = update_activity_statuses(db)
        if result["started"] or result["ended"]:
            logger.info(f"Activity status update: {result['started']} started, {result['ended']} ended")
    except Exception as e:
        db.rollback()
        logger.error(f"Error in activity status job: {e}")
    finally:
        db.close()


def run_finalize_job():
    """Scheduler entry point"""
    db = SessionLocal()
    try:
        count = finalize_ended_activities(db)
        if count:
            logger.info(f"Finalize job closed out {count} activities")
    except Exception as e:
        db.rollback()
        logger.error(f"Error in finalize job: {e}")
    finally:
        db.close()
