from datetime import timedelta
from types import SimpleNamespace

import pytest

from app.core.authorization import (
    ALL_FACULTIES,
    accessible_faculty_ids,
    has_activity_access,
    has_faculty_access,
    permissions_for_level,
    require_admin,
    require_admin_level,
    validate_activity_access,
    validate_faculty_access,
)
from app.core.exceptions import Forbidden
from app.core.session_store import AdminSnapshot
from app.models.admin_role import AdminLevel


@pytest.fixture
def session_for(store):
    def _session_for(level=None, faculty_id=None, user_id=1):
        snapshot = None
        if level is not None:
            snapshot = AdminSnapshot(level=level, faculty_id=faculty_id, permissions=permissions_for_level(level))
        return store.create(user_id, snapshot, timedelta(minutes=5), permissions=permissions_for_level(level))
    return _session_for


def test_super_admin_reaches_every_faculty(session_for):
    session = session_for(AdminLevel.SUPER_ADMIN)

    assert all(has_faculty_access(session, faculty_id) for faculty_id in (1, 2, 999))
    assert accessible_faculty_ids(session) is ALL_FACULTIES
    assert 12345 in accessible_faculty_ids(session)


@pytest.mark.parametrize("level", [AdminLevel.FACULTY_ADMIN, AdminLevel.REGULAR_ADMIN])
def test_scoped_admin_reaches_only_own_faculty(session_for, level):
    session = session_for(level, faculty_id=1)

    assert has_faculty_access(session, 1) is True
    for other in (2, 0, -1, 999999, None, "1", 1.0, True, "", [1], {"id": 1}):
        assert has_faculty_access(session, other) is False
    assert accessible_faculty_ids(session) == frozenset({1})


def test_scoped_admin_without_faculty_reaches_nothing(session_for):
    session = session_for(AdminLevel.FACULTY_ADMIN, faculty_id=None)

    assert has_faculty_access(session, 1) is False
    assert accessible_faculty_ids(session) == frozenset()


def test_non_admin_has_no_faculty_access(session_for):
    session = session_for()

    assert has_faculty_access(session, 1) is False
    assert accessible_faculty_ids(session) == frozenset()
    with pytest.raises(Forbidden):
        require_admin(session)


def test_validate_faculty_access_raises_forbidden(session_for):
    session = session_for(AdminLevel.FACULTY_ADMIN, faculty_id=1)

    validate_faculty_access(session, 1)
    with pytest.raises(Forbidden) as exc:
        validate_faculty_access(session, 2)
    # Message names the required scope, not the caller's role
    assert "faculty_admin" not in exc.value.message


def test_activity_faculty_falls_back_to_department(session_for):
    session = session_for(AdminLevel.FACULTY_ADMIN, faculty_id=1)
    via_department = SimpleNamespace(faculty_id=None, department=SimpleNamespace(faculty_id=1), created_by=99)
    other_department = SimpleNamespace(faculty_id=None, department=SimpleNamespace(faculty_id=2), created_by=99)

    assert has_activity_access(session, via_department) is True
    assert has_activity_access(session, other_department) is False


def test_activity_without_faculty_is_for_super_admin_or_creator(session_for):
    system_wide = SimpleNamespace(faculty_id=None, department=None, created_by=5)

    assert has_activity_access(session_for(AdminLevel.SUPER_ADMIN), system_wide) is True
    assert has_activity_access(session_for(AdminLevel.FACULTY_ADMIN, 1, user_id=5), system_wide) is True
    assert has_activity_access(session_for(AdminLevel.FACULTY_ADMIN, 1, user_id=6), system_wide) is False
    assert has_activity_access(session_for(user_id=5), system_wide) is False
    with pytest.raises(Forbidden):
        validate_activity_access(session_for(AdminLevel.REGULAR_ADMIN, 1, user_id=6), system_wide)


def test_admin_level_ranking(session_for):
    require_admin_level(session_for(AdminLevel.SUPER_ADMIN), AdminLevel.FACULTY_ADMIN)
    require_admin_level(session_for(AdminLevel.FACULTY_ADMIN, 1), AdminLevel.FACULTY_ADMIN)
    with pytest.raises(Forbidden):
        require_admin_level(session_for(AdminLevel.REGULAR_ADMIN, 1), AdminLevel.FACULTY_ADMIN)
    with pytest.raises(Forbidden):
        require_admin_level(session_for(AdminLevel.FACULTY_ADMIN, 1), AdminLevel.SUPER_ADMIN)
    with pytest.raises(Forbidden):
        require_admin_level(session_for(), AdminLevel.REGULAR_ADMIN)


def test_permissions_merge_level_and_role_grants():
    regular = permissions_for_level(AdminLevel.REGULAR_ADMIN, ["ExportAttendance", ""])

    assert "ScanQrCodes" in regular
    assert "ExportAttendance" in regular
    assert "" not in regular
    assert "ManageAdmins" not in regular
    assert "ManageAdmins" in permissions_for_level(AdminLevel.SUPER_ADMIN)
    assert permissions_for_level(None) == frozenset({"ViewProfile", "UpdateProfile"})
