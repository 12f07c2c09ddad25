# File: app/api/v1/endpoints/admin_users.py
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app import crud
from app.api import deps
from app.core.authorization import require_admin_level, require_permission, validate_faculty_access
from app.core.exceptions import NotFoundError, StateConflictError, ValidationError
from app.core.session_store import InMemorySessionStore, SessionRecord
from app.models.admin_role import AdminLevel
from app.models.department import Department
from app.models.user import User as UserModel
from app.schemas.admin_role import AdminRole, AdminRoleCreate
from app.schemas.common import success_response
from app.schemas.user import User, UserCreate, UserUpdate
from app.services.auth_service import build_admin_snapshot
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _department_faculty_id(db: Session, department_id: Optional[int]) -> Optional[int]:
    if department_id is None:
        return None
    department = db.query(Department).filter(Department.id == department_id).first()
    if department is None:
        raise ValidationError("Invalid department", errors={"department_id": "Department does not exist"})
    return department.faculty_id


def _get_user_or_404(db: Session, user_id: int) -> UserModel:
    user = crud.user.get(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _user_faculty_id(user: UserModel) -> Optional[int]:
    return user.department.faculty_id if user.department is not None else None


def _require_user_manager(session: SessionRecord) -> None:
    require_admin_level(session, AdminLevel.FACULTY_ADMIN)
    if session.admin_level != AdminLevel.SUPER_ADMIN:
        require_permission(session, "ManageFacultyStudents")


def _push_role_to_sessions(db: Session, store: InMemorySessionStore, user_id: int) -> int:
    """Swap the admin snapshot held by every live session of ``user_id``"""
    role = crud.admin_role.get_by_user(db, user_id=user_id)
    snapshot, permissions = build_admin_snapshot(role)
    refreshed = 0
    for record in store.list_for_user(user_id):
        store.refresh_admin_snapshot(record.session_id, snapshot, permissions)
        refreshed += 1
    return refreshed


@router.post("/users")
def create_user(
    user_in: UserCreate,
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """Create a student account inside the caller's faculty"""
    _require_user_manager(session)
    validate_faculty_access(session, _department_faculty_id(db, user_in.department_id))

    if crud.user.get_by_email(db, email=user_in.email) or crud.user.get_by_student_id(db, student_id=user_in.student_id):
        raise StateConflictError("A user with this email or student id already exists")

    user = crud.user.create(db, obj_in=user_in)
    logger.info(f"User {user.id} created by admin {session.user_id}")
    return success_response(data=User.model_validate(user), message="User created")


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    user_in: UserUpdate,
    db: Session = Depends(deps.get_db),
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """Edit a user's profile, reset their password or deactivate the account.

    Deactivating signs the user out everywhere.
    """
    _require_user_manager(session)
    user = _get_user_or_404(db, user_id)
    faculty_id = _user_faculty_id(user)
    validate_faculty_access(session, faculty_id)

    if user_in.department_id is not None and user_in.department_id != user.department_id:
        validate_faculty_access(session, _department_faculty_id(db, user_in.department_id))

    deactivating = user_in.is_active is False and bool(user.is_active)
    crud.audit_log.record(
        db,
        actor_user_id=session.user_id,
        action="user.update",
        target_type="user",
        target_id=user.id,
        faculty_id=faculty_id,
        details={"fields": sorted(user_in.model_dump(exclude_unset=True))},
    )
    user = crud.user.update(db, db_obj=user, obj_in=user_in)

    if deactivating:
        revoked = store.revoke_all(user.id, reason="account deactivated")
        logger.info(f"User {user.id} deactivated by admin {session.user_id} ({len(revoked)} sessions revoked)")
    return success_response(data=User.model_validate(user), message="User updated")


@router.post("/roles")
def grant_admin_role(
    role_in: AdminRoleCreate,
    db: Session = Depends(deps.get_db),
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    """Make a user an admin.

    Faculty admins may only appoint regular admins of their own faculty.
    """
    require_admin_level(session, AdminLevel.FACULTY_ADMIN)
    if session.admin_level != AdminLevel.SUPER_ADMIN:
        require_permission(session, "ManageRegularAdmins")
        if role_in.admin_level != AdminLevel.REGULAR_ADMIN:
            raise ValidationError(
                "Faculty admins can only appoint regular admins",
                errors={"admin_level": "Only regular_admin can be granted"},
            )
        validate_faculty_access(session, role_in.faculty_id)

    _get_user_or_404(db, role_in.user_id)
    existing = crud.admin_role.get_by_user(db, user_id=role_in.user_id)
    if existing is not None:
        raise StateConflictError("User already has an admin role", current_state=existing.admin_level.value)

    faculty_id = None if role_in.admin_level == AdminLevel.SUPER_ADMIN else role_in.faculty_id
    crud.audit_log.record(
        db,
        actor_user_id=session.user_id,
        action="admin_role.grant",
        target_type="user",
        target_id=role_in.user_id,
        faculty_id=faculty_id,
        details={"admin_level": role_in.admin_level.value},
    )
    role = crud.admin_role.create(db, obj_in=role_in.model_copy(update={"faculty_id": faculty_id}))
    _push_role_to_sessions(db, store, role.user_id)

    logger.info(f"Admin {session.user_id} granted {role.admin_level.value} to user {role.user_id}")
    return success_response(data=AdminRole.model_validate(role), message="Admin role granted")


@router.delete("/roles/{user_id}")
def revoke_admin_role(
    user_id: int,
    db: Session = Depends(deps.get_db),
    store: InMemorySessionStore = Depends(deps.get_session_store),
    session: SessionRecord = Depends(deps.get_privileged_session),
):
    require_admin_level(session, AdminLevel.FACULTY_ADMIN)
    role = crud.admin_role.get_by_user(db, user_id=user_id)
    if role is None:
        raise NotFoundError("Admin role not found")
    if session.admin_level != AdminLevel.SUPER_ADMIN:
        require_permission(session, "ManageRegularAdmins")
        if role.admin_level != AdminLevel.REGULAR_ADMIN:
            raise ValidationError(
                "Faculty admins can only remove regular admins",
                errors={"admin_level": "Only regular_admin can be removed"},
            )
        validate_faculty_access(session, role.faculty_id)

    crud.audit_log.record(
        db,
        actor_user_id=session.user_id,
        action="admin_role.revoke",
        target_type="user",
        target_id=user_id,
        faculty_id=role.faculty_id,
        details={"admin_level": role.admin_level.value},
    )
    db.delete(role)
    db.commit()
    refreshed = _push_role_to_sessions(db, store, user_id)

    logger.info(f"Admin {session.user_id} removed the admin role of user {user_id} ({refreshed} sessions updated)")
    return success_response(data={"user_id": user_id}, message="Admin role removed")
