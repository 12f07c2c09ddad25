# File: app/services/participation_state_machine.py
"""Participation lifecycle.

    registered -> checked_in -> checked_out -> completed
    registered -> no_show

Every status write is a compare-and-set UPDATE guarded by the expected
current status, so two concurrent scans can never both advance the same
row. Functions here flush but never commit; the caller owns the transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.exceptions import (
    ActivityFull,
    ActivityNotOpen,
    AlreadyCheckedIn,
    AlreadyRegistered,
    InvalidTransition,
    NotFoundError,
    StateConflictError,
)
from app.core.security import as_utc, utcnow
from app.models.activity import Activity, ActivityStatus
from app.models.participation import Participation, ParticipationStatus

logger = logging.getLogger(__name__)

# no_show sits beside the main line; it is only reachable from registered
STATUS_ORDER = {
    ParticipationStatus.REGISTERED: 0,
    ParticipationStatus.CHECKED_IN: 1,
    ParticipationStatus.CHECKED_OUT: 2,
    ParticipationStatus.COMPLETED: 3,
}

REGISTRATION_OPEN = (ActivityStatus.PUBLISHED, ActivityStatus.ONGOING)


@dataclass
class TransitionResult:
    participation: Participation
    changed: bool
    previous_status: ParticipationStatus
    outcome: str


@dataclass
class FinalizeSummary:
    activity_id: int
    completed: int = 0
    no_show: int = 0
    still_checked_in: List[int] = field(default_factory=list)


def is_forward(previous: ParticipationStatus, current: ParticipationStatus) -> bool:
    """True when moving from previous to current respects the lifecycle order."""
    if previous == current:
        return True
    if current == ParticipationStatus.NO_SHOW:
        return previous == ParticipationStatus.REGISTERED
    if previous == ParticipationStatus.NO_SHOW:
        return False
    return STATUS_ORDER[current] > STATUS_ORDER[previous]


def _write(db: Session, participation: Participation, expected: ParticipationStatus, values: Dict[str, Any]) -> bool:
    """Compare-and-set with bounded retries.

    Returns False when another writer moved the row away from ``expected``;
    ``participation`` is refreshed either way.
    """
    attempts = max(1, settings.TRANSITION_MAX_RETRIES)
    for attempt in range(attempts):
        if crud.participation.compare_and_set(
            db, participation_id=participation.id, expected=expected, values=values
        ):
            db.refresh(participation)
            return True

        db.refresh(participation)
        if participation.status != expected:
            logger.info(
                f"Participation {participation.id} moved to {participation.status.value} "
                f"while writing {values.get('status')}"
            )
            return False

    raise StateConflictError(
        "Participation is being updated concurrently, please retry",
        current_state=participation.status.value,
    )


def _unchanged(participation: Participation, outcome: str) -> TransitionResult:
    return TransitionResult(participation, False, participation.status, outcome)


def register(db: Session, user_id: int, activity: Activity, now: Optional[datetime] = None) -> Participation:
    # Hold the activity row while counting so capacity cannot be oversubscribed
    locked = crud.activity.get_for_update(db, activity_id=activity.id)
    if locked is None:
        raise NotFoundError("Activity not found")

    if locked.status not in REGISTRATION_OPEN:
        raise ActivityNotOpen(
            f"Activity is {locked.status.value} and not open for registration",
            current_state=locked.status.value,
        )
    if as_utc(now or utcnow()) >= as_utc(locked.end_time):
        raise ActivityNotOpen("Activity has already ended", current_state=locked.status.value)

    existing = crud.participation.get_by_user_activity(db, user_id=user_id, activity_id=locked.id)
    if existing is not None:
        raise AlreadyRegistered(
            f"Already registered, participation is {existing.status.value}",
            current_state=existing.status.value,
        )

    if locked.max_participants is not None:
        current = crud.participation.count_for_activity(db, activity_id=locked.id)
        if current >= locked.max_participants:
            raise ActivityFull(
                f"Activity is full ({current}/{locked.max_participants})",
                current_state=locked.status.value,
            )

    try:
        participation = crud.participation.add_registration(db, user_id=user_id, activity_id=locked.id)
    except IntegrityError:
        db.rollback()
        raise AlreadyRegistered("Already registered", current_state=ParticipationStatus.REGISTERED.value)

    logger.info(f"User {user_id} registered for activity {locked.id}")
    return participation


def check_in(db: Session, participation: Participation, now: datetime) -> TransitionResult:
    if participation.status == ParticipationStatus.REGISTERED:
        if _write(db, participation, ParticipationStatus.REGISTERED, {
            "status": ParticipationStatus.CHECKED_IN,
            "checked_in_at": now,
        }):
            return TransitionResult(participation, True, ParticipationStatus.REGISTERED, "checked_in")

    status = participation.status
    if status == ParticipationStatus.CHECKED_IN:
        return _unchanged(participation, "already_checked_in")
    if status in (ParticipationStatus.CHECKED_OUT, ParticipationStatus.COMPLETED):
        raise AlreadyCheckedIn(f"Participation is already {status.value}", current_state=status.value)
    raise InvalidTransition(f"Cannot check in a participation that is {status.value}", current_state=status.value)


def check_out(db: Session, participation: Participation, now: datetime) -> TransitionResult:
    if participation.status == ParticipationStatus.CHECKED_IN:
        checked_in_at = as_utc(participation.checked_in_at)
        if checked_in_at is None or as_utc(now) <= checked_in_at:
            raise InvalidTransition(
                "Check-out must be later than check-in",
                current_state=participation.status.value,
            )
        if _write(db, participation, ParticipationStatus.CHECKED_IN, {
            "status": ParticipationStatus.CHECKED_OUT,
            "checked_out_at": now,
        }):
            return TransitionResult(participation, True, ParticipationStatus.CHECKED_IN, "checked_out")

    status = participation.status
    if status == ParticipationStatus.CHECKED_OUT:
        return _unchanged(participation, "already_checked_out")
    raise InvalidTransition(f"Cannot check out a participation that is {status.value}", current_state=status.value)


def complete(
    db: Session,
    participation: Participation,
    now: datetime,
    activity: Activity,
    override: bool = False,
) -> TransitionResult:
    if participation.status == ParticipationStatus.CHECKED_OUT:
        if not override and as_utc(now) < as_utc(activity.end_time):
            raise InvalidTransition("Activity has not ended yet", current_state=participation.status.value)
        if _write(db, participation, ParticipationStatus.CHECKED_OUT, {"status": ParticipationStatus.COMPLETED}):
            return TransitionResult(participation, True, ParticipationStatus.CHECKED_OUT, "completed")

    status = participation.status
    if status == ParticipationStatus.COMPLETED:
        return _unchanged(participation, "already_completed")
    raise InvalidTransition(f"Cannot complete a participation that is {status.value}", current_state=status.value)


def mark_no_show(db: Session, participation: Participation, now: datetime, activity: Activity) -> TransitionResult:
    """Only once the activity has ended, whoever asks."""
    if participation.status == ParticipationStatus.REGISTERED:
        if as_utc(now) < as_utc(activity.end_time):
            raise InvalidTransition("Activity has not ended yet", current_state=participation.status.value)
        if _write(db, participation, ParticipationStatus.REGISTERED, {"status": ParticipationStatus.NO_SHOW}):
            return TransitionResult(participation, True, ParticipationStatus.REGISTERED, "no_show")

    status = participation.status
    if status == ParticipationStatus.NO_SHOW:
        return _unchanged(participation, "already_no_show")
    raise InvalidTransition(f"Cannot mark a participation that is {status.value} as no-show", current_state=status.value)


def finalize(db: Session, activity: Activity, now: datetime, override: bool = False) -> FinalizeSummary:
    """Close out an ended activity. Re-running it changes nothing.

    Rows still checked in are left open and reported back. With ``override``
    an activity that has not ended yet can have its checked-out rows
    completed early; registered rows wait for the end before going no-show.
    """
    ended = as_utc(now) >= as_utc(activity.end_time)
    if not override and not ended:
        raise InvalidTransition("Activity has not ended yet", current_state=activity.status.value)

    summary = FinalizeSummary(activity_id=activity.id)
    for participation in crud.participation.get_by_activity(db, activity_id=activity.id):
        if participation.status == ParticipationStatus.CHECKED_OUT:
            if complete(db, participation, now, activity, override=True).changed:
                summary.completed += 1
        elif participation.status == ParticipationStatus.REGISTERED and ended:
            try:
                if mark_no_show(db, participation, now, activity).changed:
                    summary.no_show += 1
            except InvalidTransition:
                # A late scan checked the participant in first
                if participation.status != ParticipationStatus.CHECKED_IN:
                    raise
                summary.still_checked_in.append(participation.id)
        elif participation.status == ParticipationStatus.CHECKED_IN:
            summary.still_checked_in.append(participation.id)

    if summary.completed or summary.no_show or summary.still_checked_in:
        logger.info(
            f"Finalized activity {activity.id}: {summary.completed} completed, "
            f"{summary.no_show} no-show, {len(summary.still_checked_in)} still checked in"
        )
    return summary
