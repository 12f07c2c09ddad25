from datetime import timedelta

import pytest

from app.core.exceptions import ActivityNotOpen
from app.models import Activity, ActivityStatus, ParticipationStatus
from app.services import participation_state_machine as sm
from app.services.activity_status_updater import finalize_ended_activities, update_activity_statuses


def _activity(db, seed, start, end, status):
    activity = Activity(
        title=f"{status.value} activity",
        start_time=start,
        end_time=end,
        status=status,
        faculty_id=seed.engineering.id,
        created_by=seed.eng_admin.id,
    )
    db.add(activity)
    db.commit()
    return activity


def test_statuses_follow_the_clock(db, seed, clock):
    starting = _activity(db, seed, clock.now - timedelta(minutes=1), clock.now + timedelta(hours=1), ActivityStatus.PUBLISHED)
    ending = _activity(db, seed, clock.now - timedelta(hours=2), clock.now - timedelta(minutes=1), ActivityStatus.ONGOING)
    cancelled = _activity(db, seed, clock.now - timedelta(minutes=1), clock.now + timedelta(hours=1), ActivityStatus.CANCELLED)
    future = _activity(db, seed, clock.now + timedelta(days=1), clock.now + timedelta(days=1, hours=1), ActivityStatus.PUBLISHED)

    result = update_activity_statuses(db, clock.now)

    assert result == {"started": 1, "ended": 1}
    assert starting.status == ActivityStatus.ONGOING
    assert ending.status == ActivityStatus.COMPLETED
    assert cancelled.status == ActivityStatus.CANCELLED
    assert future.status == ActivityStatus.PUBLISHED
    assert update_activity_statuses(db, clock.now) == {"started": 0, "ended": 0}


def test_finalize_job_closes_every_ended_activity_with_open_rows(db, seed, clock, register):
    recent = _activity(db, seed, clock.now - timedelta(hours=3), clock.now - timedelta(hours=1), ActivityStatus.COMPLETED)
    ancient = _activity(db, seed, clock.now - timedelta(days=30), clock.now - timedelta(days=29), ActivityStatus.COMPLETED)
    absent = register(seed.student_a, recent)
    forgotten = register(seed.student_b, ancient)

    assert finalize_ended_activities(db, clock.now) == 2
    assert finalize_ended_activities(db, clock.now) == 0

    db.refresh(absent)
    db.refresh(forgotten)
    assert absent.status == ParticipationStatus.NO_SHOW
    assert forgotten.status == ParticipationStatus.NO_SHOW


def test_published_activity_that_ended_between_runs_is_closed(db, seed, clock, register):
    missed = _activity(db, seed, clock.now - timedelta(minutes=3), clock.now - timedelta(minutes=2), ActivityStatus.PUBLISHED)
    absent = register(seed.student_a, missed)

    with pytest.raises(ActivityNotOpen):
        sm.register(db, seed.student_b.id, missed, clock.now)
    db.rollback()

    assert update_activity_statuses(db, clock.now) == {"started": 0, "ended": 1}
    assert missed.status == ActivityStatus.COMPLETED
    assert finalize_ended_activities(db, clock.now) == 1
    db.refresh(absent)
    assert absent.status == ParticipationStatus.NO_SHOW
