from datetime import timedelta

import pytest
from sqlalchemy import update

from app import crud
from app.core.exceptions import (
    ActivityFull,
    ActivityNotOpen,
    AlreadyCheckedIn,
    AlreadyRegistered,
    InvalidTransition,
)
from app.core.security import as_utc
from app.models import Activity, ActivityStatus, Participation, ParticipationStatus
from app.services import participation_state_machine as sm


def _activity(db, seed, clock, **overrides):
    values = dict(
        title="Open Day",
        start_time=clock.now + timedelta(days=1),
        end_time=clock.now + timedelta(days=1, hours=3),
        status=ActivityStatus.PUBLISHED,
        faculty_id=seed.engineering.id,
        created_by=seed.eng_admin.id,
    )
    values.update(overrides)
    activity = Activity(**values)
    db.add(activity)
    db.commit()
    return activity


def test_register_fills_activity_then_reports_full(db, seed, clock, register):
    activity = _activity(db, seed, clock, max_participants=2)
    register(seed.student_a, activity)

    participation = sm.register(db, seed.student_b.id, activity)
    db.commit()

    assert participation.status == ParticipationStatus.REGISTERED
    assert crud.participation.count_for_activity(db, activity_id=activity.id) == 2
    with pytest.raises(ActivityFull):
        sm.register(db, seed.student_c.id, activity)
    assert crud.participation.count_for_activity(db, activity_id=activity.id) == 2


@pytest.mark.parametrize("status", [ActivityStatus.DRAFT, ActivityStatus.COMPLETED, ActivityStatus.CANCELLED])
def test_register_requires_open_activity(db, seed, clock, status):
    activity = _activity(db, seed, clock, status=status)

    with pytest.raises(ActivityNotOpen) as exc:
        sm.register(db, seed.student_a.id, activity)
    assert exc.value.current_state == status.value


def test_register_twice_is_already_registered(db, seed, clock):
    activity = _activity(db, seed, clock)
    sm.register(db, seed.student_a.id, activity)
    db.commit()

    with pytest.raises(AlreadyRegistered) as exc:
        sm.register(db, seed.student_a.id, activity)
    assert exc.value.current_state == "registered"


def test_check_in_twice_writes_timestamp_once(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity)
    first_time = clock.now

    first = sm.check_in(db, participation, first_time)
    second = sm.check_in(db, participation, first_time + timedelta(seconds=2))
    db.commit()
    db.refresh(participation)

    assert first.changed is True and first.previous_status == ParticipationStatus.REGISTERED
    assert second.changed is False and second.outcome == "already_checked_in"
    assert participation.status == ParticipationStatus.CHECKED_IN
    assert as_utc(participation.checked_in_at) == first_time


def test_check_out_from_registered_is_invalid_and_writes_nothing(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity)

    with pytest.raises(InvalidTransition) as exc:
        sm.check_out(db, participation, clock.now)
    db.rollback()
    db.refresh(participation)

    assert exc.value.current_state == "registered"
    assert participation.status == ParticipationStatus.REGISTERED
    assert participation.checked_in_at is None
    assert participation.checked_out_at is None


def test_check_out_must_follow_check_in(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity)
    sm.check_in(db, participation, clock.now)

    with pytest.raises(InvalidTransition):
        sm.check_out(db, participation, clock.now)

    result = sm.check_out(db, participation, clock.now + timedelta(minutes=45))
    again = sm.check_out(db, participation, clock.now + timedelta(minutes=46))
    db.commit()
    db.refresh(participation)

    assert result.changed is True
    assert again.changed is False and again.outcome == "already_checked_out"
    assert as_utc(participation.checked_out_at) == clock.now + timedelta(minutes=45)
    assert participation.checked_out_at > participation.checked_in_at


@pytest.mark.parametrize("status", [ParticipationStatus.CHECKED_OUT, ParticipationStatus.COMPLETED])
def test_check_in_after_checkout_is_already_checked_in(db, seed, clock, register, status):
    participation = register(
        seed.student_a, seed.activity, status=status,
        checked_in_at=clock.now - timedelta(hours=1), checked_out_at=clock.now,
    )

    with pytest.raises(AlreadyCheckedIn):
        sm.check_in(db, participation, clock.now)


def test_no_show_cannot_be_checked_in(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity, status=ParticipationStatus.NO_SHOW)

    with pytest.raises(InvalidTransition):
        sm.check_in(db, participation, clock.now)


def test_lost_race_returns_already_checked_in_without_rewriting(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity)
    winner_time = clock.now

    # Another request checks in first; our loaded object still says registered
    db.execute(
        update(Participation)
        .where(Participation.id == participation.id)
        .values(status=ParticipationStatus.CHECKED_IN, checked_in_at=winner_time)
        .execution_options(synchronize_session=False)
    )
    assert participation.status == ParticipationStatus.REGISTERED

    result = sm.check_in(db, participation, winner_time + timedelta(seconds=1))

    assert result.changed is False
    assert participation.status == ParticipationStatus.CHECKED_IN
    assert as_utc(participation.checked_in_at) == winner_time


def test_complete_waits_for_activity_end_unless_overridden(db, seed, clock, register):
    participation = register(
        seed.student_a, seed.activity, status=ParticipationStatus.CHECKED_OUT,
        checked_in_at=clock.now - timedelta(minutes=30), checked_out_at=clock.now,
    )

    with pytest.raises(InvalidTransition):
        sm.complete(db, participation, clock.now, seed.activity)

    result = sm.complete(db, participation, clock.now, seed.activity, override=True)
    assert result.changed is True
    assert participation.status == ParticipationStatus.COMPLETED


def test_complete_requires_checked_out(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity, status=ParticipationStatus.CHECKED_IN,
                              checked_in_at=clock.now)

    with pytest.raises(InvalidTransition):
        sm.complete(db, participation, clock.now + timedelta(days=1), seed.activity)


def test_finalize_is_rerunnable_and_reports_open_check_ins(db, seed, clock, register):
    activity = _activity(
        db, seed, clock,
        start_time=clock.now - timedelta(hours=3),
        end_time=clock.now - timedelta(hours=1),
        status=ActivityStatus.COMPLETED,
    )
    done = register(seed.student_a, activity, status=ParticipationStatus.CHECKED_OUT,
                    checked_in_at=clock.now - timedelta(hours=3), checked_out_at=clock.now - timedelta(hours=1))
    absent = register(seed.student_b, activity)
    lingering = register(seed.student_c, activity, status=ParticipationStatus.CHECKED_IN,
                         checked_in_at=clock.now - timedelta(hours=2))

    summary = sm.finalize(db, activity, clock.now)
    db.commit()
    rerun = sm.finalize(db, activity, clock.now + timedelta(minutes=5))
    db.commit()

    assert (summary.completed, summary.no_show, summary.still_checked_in) == (1, 1, [lingering.id])
    assert (rerun.completed, rerun.no_show, rerun.still_checked_in) == (0, 0, [lingering.id])
    for participation in (done, absent, lingering):
        db.refresh(participation)
    assert done.status == ParticipationStatus.COMPLETED
    assert absent.status == ParticipationStatus.NO_SHOW
    assert lingering.status == ParticipationStatus.CHECKED_IN


def test_finalize_before_end_needs_override(db, seed, clock, register):
    waiting = register(seed.student_a, seed.activity)
    left_early = register(seed.student_b, seed.activity, status=ParticipationStatus.CHECKED_OUT,
                          checked_in_at=clock.now - timedelta(minutes=40), checked_out_at=clock.now)

    with pytest.raises(InvalidTransition):
        sm.finalize(db, seed.activity, clock.now)
    summary = sm.finalize(db, seed.activity, clock.now, override=True)
    db.commit()

    assert (summary.completed, summary.no_show) == (1, 0)
    db.refresh(left_early)
    assert left_early.status == ParticipationStatus.COMPLETED
    # registered rows stay open while the activity runs, so a late arrival can still check in
    assert sm.check_in(db, waiting, clock.now + timedelta(minutes=1)).changed is True


def test_no_show_waits_for_activity_end(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity)

    with pytest.raises(InvalidTransition):
        sm.mark_no_show(db, participation, clock.now, seed.activity)
    assert participation.status == ParticipationStatus.REGISTERED

    result = sm.mark_no_show(db, participation, as_utc(seed.activity.end_time), seed.activity)
    assert result.changed is True
    assert participation.status == ParticipationStatus.NO_SHOW


def test_observed_statuses_only_move_forward(db, seed, clock, register):
    participation = register(seed.student_a, seed.activity)
    observed = [participation.status]

    steps = [
        lambda: sm.check_in(db, participation, clock.now),
        lambda: sm.check_in(db, participation, clock.now + timedelta(seconds=1)),
        lambda: sm.check_out(db, participation, clock.now + timedelta(minutes=30)),
        lambda: sm.check_out(db, participation, clock.now + timedelta(minutes=31)),
        lambda: sm.complete(db, participation, clock.now, seed.activity, override=True),
    ]
    for step in steps:
        step()
        observed.append(participation.status)

    assert all(sm.is_forward(a, b) for a, b in zip(observed, observed[1:]))
    assert observed[-1] == ParticipationStatus.COMPLETED
    assert sm.is_forward(ParticipationStatus.REGISTERED, ParticipationStatus.NO_SHOW)
    assert not sm.is_forward(ParticipationStatus.CHECKED_IN, ParticipationStatus.NO_SHOW)
    assert not sm.is_forward(ParticipationStatus.CHECKED_OUT, ParticipationStatus.CHECKED_IN)
