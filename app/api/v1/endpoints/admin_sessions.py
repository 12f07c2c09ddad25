# File: app/api/v1/endpoints/admin_sessions.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app import crud
from app.api import deps
from app.core.authorization import require_admin_level, validate_faculty_access
from app.core.exceptions import NotFoundError
from app.core.session_store import InMemorySessionStore, SessionRecord
from app.models.admin_role import AdminLevel
from app.schemas.common import success_response
from app.schemas.session import ForceLogoutRequest, ForceLogoutResult, SessionSummary, SweepResult
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _summary(record: SessionRecord) -> SessionSummary:
    return SessionSummary(session_ref=record.credential_ref, **record.to_public_dict())


@router.get("/sessions")
def list_sessions(
    user_id: Optional[int] = Query(None),
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """List active sessions, optionally for one user (super admin only)"""
    require_admin_level(session, AdminLevel.SUPER_ADMIN)
    records = store.list_for_user(user_id) if user_id is not None else store.list_active()
    return success_response(data=[_summary(r) for r in records])


@router.delete("/users/{user_id}/sessions")
def force_logout_user(
    user_id: int,
    logout_in: Optional[ForceLogoutRequest] = None,
    db: Session = Depends(deps.get_db),
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """Revoke every session of a user.

    Super admins may target anyone; faculty admins only users whose
    department belongs to their faculty.
    """
    require_admin_level(session, AdminLevel.FACULTY_ADMIN)

    target = crud.user.get(db, user_id)
    if target is None:
        raise NotFoundError("User not found")

    faculty_id = target.department.faculty_id if target.department is not None else None
    if session.admin_level != AdminLevel.SUPER_ADMIN:
        validate_faculty_access(session, faculty_id)

    reason = (logout_in.reason if logout_in else None) or f"forced by admin {session.user_id}"
    revoked = store.revoke_all(user_id, reason=reason)

    crud.audit_log.record(
        db,
        actor_user_id=session.user_id,
        action="session.force_logout",
        target_type="user",
        target_id=user_id,
        faculty_id=faculty_id,
        details={"revoked_sessions": len(revoked), "reason": reason},
    )
    db.commit()

    logger.info(f"Admin {session.user_id} forced logout of user {user_id} ({len(revoked)} sessions)")
    return success_response(
        data=ForceLogoutResult(user_id=user_id, revoked_sessions=len(revoked)),
        message="User logged out",
    )


@router.post("/sessions/sweep")
def sweep_sessions(
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    require_admin_level(session, AdminLevel.SUPER_ADMIN)
    removed = store.sweep()
    return success_response(
        data=SweepResult(removed=removed, active=store.count_active()),
        message="Expired sessions removed",
    )
