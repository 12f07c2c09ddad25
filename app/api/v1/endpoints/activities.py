# File: app/api/v1/endpoints/activities.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app import crud
from app.api import deps
from app.core.authorization import (
    activity_faculty_id,
    has_activity_access,
    require_admin_level,
    require_permission,
    validate_activity_access,
    validate_faculty_access,
)
from app.core.exceptions import InvalidTransition, NotFoundError, ValidationError
from app.core.security import as_utc, utcnow
from app.core.session_store import InMemorySessionStore, SessionRecord
from app.crud.activity import OPEN_STATUSES
from app.models.activity import Activity as ActivityModel, ActivityStatus
from app.models.admin_role import AdminLevel
from app.models.department import Department
from app.schemas.activity import Activity, ActivityCreate, ActivityUpdate, FinalizeRequest, FinalizeResult
from app.schemas.common import success_response
from app.schemas.credential import ScanRequest
from app.schemas.participation import Participation, ScanResult
from app.services import checkin_coordinator
from app.services import participation_state_machine as state_machine
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

# Status changes an admin may make by hand
STATUS_CHANGES = {
    ActivityStatus.DRAFT: (ActivityStatus.PUBLISHED, ActivityStatus.CANCELLED),
    ActivityStatus.PUBLISHED: (ActivityStatus.DRAFT, ActivityStatus.CANCELLED),
    ActivityStatus.ONGOING: (ActivityStatus.CANCELLED,),
}


def _get_activity_or_404(db: Session, activity_id: int) -> ActivityModel:
    activity = crud.activity.get(db, activity_id)
    if activity is None:
        raise NotFoundError("Activity not found")
    return activity


@router.get("")
def list_activities(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_current_session),
):
    """Admins see the activities of their faculties; everyone else sees open ones"""
    activities = crud.activity.get_multi_scoped(db, session=session, skip=skip, limit=limit)
    return success_response(data=[Activity.model_validate(a) for a in activities])


@router.post("")
def create_activity(
    activity_in: ActivityCreate,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    require_admin_level(session, AdminLevel.FACULTY_ADMIN)

    faculty_id = activity_in.faculty_id
    if activity_in.department_id is not None:
        department = db.query(Department).filter(Department.id == activity_in.department_id).first()
        if department is None:
            raise ValidationError("Invalid department", errors={"department_id": "Department does not exist"})
        if faculty_id is not None and department.faculty_id != faculty_id:
            raise ValidationError(
                "Department does not belong to faculty",
                errors={"department_id": "Department belongs to another faculty"},
            )
        faculty_id = department.faculty_id

    if faculty_id is not None:
        validate_faculty_access(session, faculty_id)
    elif session.admin_level != AdminLevel.SUPER_ADMIN:
        # Faculty admins always create inside their own faculty
        activity_in = activity_in.model_copy(update={"faculty_id": session.faculty_id})

    activity = crud.activity.create_with_owner(db, obj_in=activity_in, created_by=session.user_id)
    logger.info(f"Activity {activity.id} created by user {session.user_id}")
    return success_response(data=Activity.model_validate(activity), message="Activity created")


@router.get("/{activity_id}")
def read_activity(
    activity_id: int,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_current_session),
):
    activity = _get_activity_or_404(db, activity_id)
    visible = has_activity_access(session, activity) if session.is_admin else activity.status in OPEN_STATUSES
    if not visible:
        # Hidden activities look the same as missing ones
        raise NotFoundError("Activity not found")
    return success_response(data=Activity.model_validate(activity))


@router.put("/{activity_id}")
def update_activity(
    activity_id: int,
    activity_in: ActivityUpdate,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """Edit an activity, publish or cancel it.

    Ongoing and completed are set by the status job only; completed and
    cancelled activities are frozen.
    """
    require_admin_level(session, AdminLevel.FACULTY_ADMIN)
    activity = _get_activity_or_404(db, activity_id)
    validate_activity_access(session, activity)

    if activity.status in (ActivityStatus.COMPLETED, ActivityStatus.CANCELLED):
        raise InvalidTransition(
            f"Activity is {activity.status.value} and can no longer be changed",
            current_state=activity.status.value,
        )

    update_data = {
        field: value
        for field, value in activity_in.model_dump(exclude_unset=True).items()
        if value is not None or field == "max_participants"
    }

    new_status = update_data.get("status")
    if new_status is not None and new_status != activity.status:
        if new_status not in STATUS_CHANGES[activity.status]:
            raise InvalidTransition(
                f"Cannot move a {activity.status.value} activity to {new_status.value}",
                current_state=activity.status.value,
            )
    else:
        update_data.pop("status", None)

    start_time = as_utc(update_data.get("start_time", activity.start_time))
    end_time = as_utc(update_data.get("end_time", activity.end_time))
    if end_time <= start_time:
        raise ValidationError("Invalid time range", errors={"end_time": "end_time must be after start_time"})

    if update_data.get("max_participants") is not None:
        registered = crud.participation.count_for_activity(db, activity_id=activity.id)
        if update_data["max_participants"] < registered:
            raise ValidationError(
                "Capacity below current registrations",
                errors={"max_participants": f"{registered} participants are already registered"},
            )

    crud.audit_log.record(
        db,
        actor_user_id=session.user_id,
        action="activity.update",
        target_type="activity",
        target_id=activity.id,
        faculty_id=activity_faculty_id(activity),
        details={
            "fields": sorted(update_data),
            "previous_status": activity.status.value,
        },
    )
    activity = crud.activity.update(db, db_obj=activity, obj_in=update_data)
    logger.info(f"Activity {activity.id} updated by user {session.user_id} ({activity.status.value})")
    return success_response(data=Activity.model_validate(activity), message="Activity updated")


@router.post("/{activity_id}/participate")
def participate(
    activity_id: int,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_current_session),
):
    """Register the caller for an activity"""
    activity = _get_activity_or_404(db, activity_id)
    try:
        participation = state_machine.register(db, session.user_id, activity, utcnow())
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(participation)
    return success_response(data=Participation.model_validate(participation), message="Registered for activity")


@router.post("/{activity_id}/scan")
def scan_credential(
    activity_id: int,
    scan_in: ScanRequest,
    db: Session = Depends(deps.get_db),
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_admin_session),
):
    """Check a participant in or out from their QR credential"""
    outcome = checkin_coordinator.scan(
        db, store, session, activity_id, scan_in.qr_payload, scan_in.signature
    )
    result = ScanResult(
        participation=Participation.model_validate(outcome.participation),
        action=outcome.action,
        changed=outcome.changed,
        message=outcome.message,
    )
    return success_response(data=result, message=outcome.message)


@router.post("/{activity_id}/finalize")
def finalize_activity(
    activity_id: int,
    finalize_in: Optional[FinalizeRequest] = None,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """Complete checked-out participations and mark never-scanned ones as no-show"""
    require_permission(session, "ManageActivityParticipation")
    activity = _get_activity_or_404(db, activity_id)
    validate_activity_access(session, activity)
    override = finalize_in.override if finalize_in else False

    try:
        summary = state_machine.finalize(db, activity, utcnow(), override=override)
        crud.audit_log.record(
            db,
            actor_user_id=session.user_id,
            action="activity.finalize",
            target_type="activity",
            target_id=activity.id,
            faculty_id=activity_faculty_id(activity),
            details={
                "override": override,
                "completed": summary.completed,
                "no_show": summary.no_show,
                "still_checked_in": summary.still_checked_in,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return success_response(
        data=FinalizeResult(
            activity_id=summary.activity_id,
            completed=summary.completed,
            no_show=summary.no_show,
            still_checked_in=summary.still_checked_in,
        ),
        message="Activity finalized",
    )


@router.get("/{activity_id}/participations")
def list_activity_participations(
    activity_id: int,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_admin_session),
):
    activity = _get_activity_or_404(db, activity_id)
    validate_activity_access(session, activity)
    participations = crud.participation.get_by_activity(db, activity_id=activity.id)
    return success_response(data=[Participation.model_validate(p) for p in participations])
