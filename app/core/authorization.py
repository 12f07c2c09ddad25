# File: app/core/authorization.py
"""Faculty-scoped authorization decided purely from the session snapshot.

Every check takes the caller's ``SessionRecord`` explicitly. No database
round-trip happens here; staleness is bounded by the session ttl and by the
re-validation done for privilege-sensitive routes in ``app.api.deps``.
"""
from typing import Any, FrozenSet, Iterable, Optional, Union

from sqlalchemy import and_, false, or_

from app.core.exceptions import Forbidden
from app.core.session_store import SessionRecord
from app.models.admin_role import AdminLevel


class AllFaculties:
    """Sentinel: the caller may see every faculty."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __contains__(self, faculty_id: Any) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL_FACULTIES"


ALL_FACULTIES = AllFaculties()

FacultyScope = Union[AllFaculties, FrozenSet[int]]

# Rank order used by require_admin_level
_LEVEL_RANK = {
    AdminLevel.REGULAR_ADMIN: 1,
    AdminLevel.FACULTY_ADMIN: 2,
    AdminLevel.SUPER_ADMIN: 3,
}

_LEVEL_PERMISSIONS = {
    AdminLevel.SUPER_ADMIN: (
        "ManageAllFaculties",
        "ViewSystemReports",
        "ManageAdmins",
        "ViewAllSessions",
        "ScanQrCodes",
        "ManageActivityParticipation",
    ),
    AdminLevel.FACULTY_ADMIN: (
        "ManageFacultyStudents",
        "ManageFacultyActivities",
        "ManageDepartments",
        "ViewFacultyReports",
        "ManageRegularAdmins",
        "ScanQrCodes",
        "ManageActivityParticipation",
    ),
    AdminLevel.REGULAR_ADMIN: (
        "ScanQrCodes",
        "ViewAssignedActivities",
        "ManageActivityParticipation",
    ),
}

BASE_PERMISSIONS = ("ViewProfile", "UpdateProfile")


def permissions_for_level(level: Optional[AdminLevel], extra: Iterable[str] = ()) -> FrozenSet[str]:
    granted = set(BASE_PERMISSIONS)
    if level is not None:
        granted.update(_LEVEL_PERMISSIONS[level])
    granted.update(p for p in extra if p)
    return frozenset(granted)


def has_faculty_access(session: SessionRecord, faculty_id: Any) -> bool:
    admin = session.admin
    if admin is None:
        return False
    if admin.level == AdminLevel.SUPER_ADMIN:
        return True
    if admin.level in (AdminLevel.FACULTY_ADMIN, AdminLevel.REGULAR_ADMIN):
        # A scoped admin without an assigned faculty reaches nothing
        if admin.faculty_id is None or faculty_id is None:
            return False
        return type(faculty_id) is type(admin.faculty_id) and faculty_id == admin.faculty_id
    return False


def validate_faculty_access(session: SessionRecord, faculty_id: Any) -> None:
    if not has_faculty_access(session, faculty_id):
        raise Forbidden("Access to this faculty is required")


def accessible_faculty_ids(session: SessionRecord) -> FacultyScope:
    admin = session.admin
    if admin is None:
        return frozenset()
    if admin.level == AdminLevel.SUPER_ADMIN:
        return ALL_FACULTIES
    if admin.faculty_id is None:
        return frozenset()
    return frozenset({admin.faculty_id})


def scope_query(query, faculty_column, session: SessionRecord, owner_column=None):
    """Narrow a SQLAlchemy query to the faculties the session may see.

    With ``owner_column`` set, rows without any faculty stay visible to the
    admin that created them.
    """
    scope = accessible_faculty_ids(session)
    if scope is ALL_FACULTIES:
        return query

    condition = faculty_column.in_(scope) if scope else false()
    if owner_column is not None and session.admin is not None:
        condition = or_(condition, and_(faculty_column.is_(None), owner_column == session.user_id))
    return query.filter(condition)


def activity_faculty_id(activity) -> Optional[int]:
    if activity.faculty_id is not None:
        return activity.faculty_id
    if activity.department is not None:
        return activity.department.faculty_id
    return None


def has_activity_access(session: SessionRecord, activity) -> bool:
    faculty_id = activity_faculty_id(activity)
    if faculty_id is None:
        # System-wide activities belong to super admins and their creator
        if session.admin is None:
            return False
        return session.admin.level == AdminLevel.SUPER_ADMIN or activity.created_by == session.user_id
    return has_faculty_access(session, faculty_id)


def validate_activity_access(session: SessionRecord, activity) -> None:
    if not has_activity_access(session, activity):
        raise Forbidden("Admin access to the activity's faculty is required")


def has_permission(session: SessionRecord, permission: str) -> bool:
    return permission in session.permissions


def require_permission(session: SessionRecord, permission: str) -> None:
    if not has_permission(session, permission):
        raise Forbidden(f"Permission '{permission}' is required")


def require_admin(session: SessionRecord) -> None:
    if session.admin is None:
        raise Forbidden("Admin access is required")


def require_admin_level(session: SessionRecord, required: AdminLevel) -> None:
    require_admin(session)
    if _LEVEL_RANK[session.admin.level] < _LEVEL_RANK[required]:
        raise Forbidden(f"{required.value} access is required")
