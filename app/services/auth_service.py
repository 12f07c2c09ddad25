# File: app/services/auth_service.py
import logging
from datetime import timedelta
from typing import Any, Dict, FrozenSet, Optional, Tuple

from sqlalchemy.orm import Session

from app import crud
from app.core.authorization import permissions_for_level
from app.core.config import settings
from app.core.exceptions import InvalidLogin
from app.core.security import utcnow
from app.core.session_store import AdminSnapshot, InMemorySessionStore, SessionRecord
from app.models.admin_role import AdminLevel, AdminRole

logger = logging.getLogger(__name__)


def session_ttl(remember_me: bool) -> timedelta:
    if remember_me:
        return timedelta(days=settings.SESSION_REMEMBER_ME_DAYS)
    return timedelta(minutes=settings.SESSION_TTL_MINUTES)


def build_admin_snapshot(role: Optional[AdminRole]) -> Tuple[Optional[AdminSnapshot], FrozenSet[str]]:
    """Snapshot an AdminRole row together with the effective permission set."""
    if role is None:
        return None, permissions_for_level(None)

    permissions = permissions_for_level(role.admin_level, role.permissions or [])
    faculty_id = None if role.admin_level == AdminLevel.SUPER_ADMIN else role.faculty_id
    return AdminSnapshot(level=role.admin_level, faculty_id=faculty_id, permissions=permissions), permissions


def login(
    db: Session,
    store: InMemorySessionStore,
    *,
    identifier: str,
    password: str,
    remember_me: bool = False,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    device_info: Optional[Dict[str, Any]] = None,
) -> SessionRecord:
    user = crud.user.authenticate(db, identifier=identifier, password=password)
    if user is None:
        logger.info("Login failed: unknown identifier or bad password")
        raise InvalidLogin("bad credentials")
    if not crud.user.is_active(user):
        logger.info(f"Login refused for inactive user {user.id}")
        raise InvalidLogin("inactive user")

    role = crud.admin_role.get_by_user(db, user_id=user.id)
    snapshot, permissions = build_admin_snapshot(role)

    record = store.create(
        user.id,
        snapshot,
        session_ttl(remember_me),
        permissions=permissions,
        ip_address=ip_address,
        user_agent=user_agent,
        device_info=device_info,
        remember_me=remember_me,
    )

    user.last_login = utcnow()
    db.add(user)
    db.commit()
    return record


def refresh_session_privileges(db: Session, store: InMemorySessionStore, session: SessionRecord) -> SessionRecord:
    """Re-read the caller's AdminRole and replace the snapshot held in the store."""
    role = crud.admin_role.get_by_user(db, user_id=session.user_id)
    snapshot, permissions = build_admin_snapshot(role)
    if snapshot != session.admin:
        logger.info(
            f"Admin role of user {session.user_id} changed mid-session "
            f"({session.admin_level.value if session.admin_level else None} -> "
            f"{snapshot.level.value if snapshot else None})"
        )
    return store.refresh_admin_snapshot(session.session_id, snapshot, permissions)
