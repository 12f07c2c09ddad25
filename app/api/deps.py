# File: app/api/deps.py
from typing import Optional
from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.core.authorization import require_admin
from app.core.config import settings
from app.core.exceptions import SessionNotFound
from app.core.session_store import InMemorySessionStore, SessionRecord, session_store
from app.services.auth_service import refresh_session_privileges

bearer = HTTPBearer(auto_error=False)

__all__ = [
    "get_db",
    "get_session_store",
    "get_session_id",
    "get_current_session",
    "get_admin_session",
    "get_privileged_session",
    "get_client_ip",
]


def get_session_store() -> InMemorySessionStore:
    return session_store


def get_session_id(
    request: Request,
    x_session_id: Optional[str] = Header(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Optional[str]:
    """Session id from the cookie, then X-Session-ID, then a bearer token."""
    cookie_value = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie_value:
        return cookie_value
    if x_session_id:
        return x_session_id
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return None


def get_current_session(
    session_id: Optional[str] = Depends(get_session_id),
    store: InMemorySessionStore = Depends(get_session_store),
) -> SessionRecord:
    if not session_id:
        raise SessionNotFound("no session id supplied")
    return store.get(session_id)


def get_admin_session(
    session: SessionRecord = Depends(get_current_session),
) -> SessionRecord:
    require_admin(session)
    return session


def get_privileged_session(
    db: Session = Depends(get_db),
    store: InMemorySessionStore = Depends(get_session_store),
    session: SessionRecord = Depends(get_current_session),
) -> SessionRecord:
    """Admin session re-validated against the current AdminRole row.

    Used for operations where a demotion must take effect immediately.
    """
    refreshed = refresh_session_privileges(db, store, session)
    require_admin(refreshed)
    return refreshed


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
