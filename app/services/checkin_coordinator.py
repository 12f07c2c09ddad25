# File: app/services/checkin_coordinator.py
"""Turn a scanned QR credential into a check-in or check-out.

Credential validity is settled before authorization and before any
participation lookup, so a rejected scan says nothing about whether the
holder is registered.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from app import crud
from app.core.authorization import activity_faculty_id, has_activity_access, require_permission
from app.core.config import settings
from app.core.credentials import verify_credential
from app.core.exceptions import ActivityNotOpen, Forbidden, InvalidTransition, NotFoundError, NotRegistered, ScanTimeout
from app.core.security import as_utc, utcnow
from app.core.session_store import InMemorySessionStore, SessionRecord
from app.core.websocket_manager import realtime_hub
from app.models.activity import ActivityStatus
from app.models.participation import Participation, ParticipationStatus
from app.services import participation_state_machine as state_machine

logger = logging.getLogger(__name__)

ACTION_CHECK_IN = "check_in"
ACTION_CHECK_OUT = "check_out"
ACTION_NONE = "none"


@dataclass
class ScanOutcome:
    participation: Participation
    action: str
    changed: bool
    message: str


class ScanDeadline:
    """End-to-end budget for one scan, checked between steps."""

    def __init__(self, timeout_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.expires_at = clock() + timeout_seconds

    def remaining_ms(self) -> int:
        return max(1, int((self.expires_at - self.clock()) * 1000))

    def check(self, step: str) -> None:
        if self.clock() > self.expires_at:
            raise ScanTimeout(f"Scan exceeded {self.timeout_seconds}s during {step}")


def _limit_statement_time(db: Session, deadline: ScanDeadline) -> None:
    # Only PostgreSQL can enforce the budget inside the database
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {deadline.remaining_ms()}"))


def _apply_toggle(db: Session, participation: Participation, now: datetime) -> ScanOutcome:
    status = participation.status

    if status == ParticipationStatus.REGISTERED:
        result = state_machine.check_in(db, participation, now)
        if result.changed:
            return ScanOutcome(participation, ACTION_CHECK_IN, True, "Checked in")
        return ScanOutcome(participation, ACTION_NONE, False, "Already checked in")

    if status == ParticipationStatus.CHECKED_IN:
        checked_in_at = as_utc(participation.checked_in_at)
        if checked_in_at is not None and (as_utc(now) - checked_in_at).total_seconds() < settings.SCAN_DUPLICATE_WINDOW_SECONDS:
            return ScanOutcome(participation, ACTION_NONE, False, "Already checked in")
        result = state_machine.check_out(db, participation, now)
        if result.changed:
            return ScanOutcome(participation, ACTION_CHECK_OUT, True, "Checked out")
        return ScanOutcome(participation, ACTION_NONE, False, "Already checked out")

    if status == ParticipationStatus.CHECKED_OUT:
        return ScanOutcome(participation, ACTION_NONE, False, "Already checked out")

    raise InvalidTransition(f"Participation is {status.value}", current_state=status.value)


def _publish(outcome: ScanOutcome, activity_id: int) -> None:
    if not settings.ENABLE_WEBSOCKET_NOTIFICATIONS or not outcome.changed:
        return
    participation = outcome.participation
    realtime_hub.publish_to_user(participation.user_id, {
        "type": "participation_updated",
        "activity_id": activity_id,
        "participation_id": participation.id,
        "status": participation.status.value,
        "action": outcome.action,
    })


def scan(
    db: Session,
    store: InMemorySessionStore,
    admin_session: SessionRecord,
    activity_id: int,
    qr_payload: Any,
    signature: Any,
    now: Optional[datetime] = None,
    deadline: Optional[ScanDeadline] = None,
) -> ScanOutcome:
    now = now or utcnow()
    deadline = deadline or ScanDeadline(settings.SCAN_TIMEOUT_SECONDS)

    try:
        _limit_statement_time(db, deadline)

        # 1-3: issuing session, signature, ttl window
        fields = verify_credential(store, qr_payload, signature, now)
        deadline.check("credential verification")

        # 4: scanner's authority over the activity
        activity = crud.activity.get(db, activity_id)
        if activity is None:
            raise NotFoundError("Activity not found")
        try:
            require_permission(admin_session, "ScanQrCodes")
            if not has_activity_access(admin_session, activity):
                raise Forbidden("Admin access to the activity's faculty is required")
        except Forbidden:
            logger.warning(
                f"Scan denied: user {admin_session.user_id} "
                f"({admin_session.admin_level.value if admin_session.admin_level else 'no admin role'}) "
                f"on activity {activity_id}"
            )
            raise
        if activity.status == ActivityStatus.CANCELLED:
            raise ActivityNotOpen("Activity is cancelled", current_state=activity.status.value)

        # 5: the participant's row
        participation = crud.participation.get_by_user_activity(
            db, user_id=fields["user_id"], activity_id=activity_id
        )
        if participation is None:
            raise NotRegistered()
        deadline.check("participation lookup")

        # 6: toggle
        previous_status = participation.status
        outcome = _apply_toggle(db, participation, now)
        deadline.check("state transition")

        # 7: audit and persist
        crud.audit_log.record(
            db,
            actor_user_id=admin_session.user_id,
            action=f"participation.scan.{outcome.action}",
            target_type="participation",
            target_id=participation.id,
            faculty_id=activity_faculty_id(activity),
            details={
                "activity_id": activity_id,
                "user_id": participation.user_id,
                "previous_status": previous_status.value,
                "status": participation.status.value,
                "changed": outcome.changed,
            },
        )
        deadline.check("audit")
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(outcome.participation)
    logger.info(
        f"Scan by user {admin_session.user_id} on activity {activity_id}: "
        f"participation {outcome.participation.id} {outcome.action} ({outcome.participation.status.value})"
    )
    _publish(outcome, activity_id)
    return outcome
