# File: app/api/v1/endpoints/sessions.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from app import crud
from app.api import deps
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.session_store import InMemorySessionStore, SessionRecord
from app.models.admin_role import AdminLevel
from app.schemas.common import success_response
from app.schemas.session import LoginRequest, LoginResponse, SessionInfo
from app.schemas.user import User
from app.services import auth_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, record: SessionRecord) -> None:
    max_age = int((record.expires_at - record.issued_at).total_seconds()) if record.remember_me else None
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=record.session_id,
        max_age=max_age,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("")
def login(
    login_in: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(deps.get_db),
    store: InMemorySessionStore = Depends(deps.get_session_store),
):
    """Log in with email or student id; the session id comes back in the body and as a cookie"""
    record = auth_service.login(
        db,
        store,
        identifier=login_in.identifier,
        password=login_in.password,
        remember_me=login_in.remember_me,
        ip_address=deps.get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        device_info=login_in.device_info,
    )
    _set_session_cookie(response, record)
    user = crud.user.get(db, record.user_id)
    return success_response(
        data=LoginResponse(
            session_id=record.session_id,
            user=User.model_validate(user),
            **record.to_public_dict(),
        ),
        message="Login successful",
    )


@router.get("/me")
def read_current_session(session: SessionRecord = Depends(deps.get_current_session)):
    return success_response(data=SessionInfo(**session.to_public_dict()))


@router.post("/renew")
def renew_session(
    response: Response,
    session: SessionRecord = Depends(deps.get_current_session),
    store: InMemorySessionStore = Depends(deps.get_session_store),
):
    """Push the expiry forward by the session's ttl tier, bounded by the maximum lifetime"""
    record = store.extend(session.session_id, auth_service.session_ttl(session.remember_me))
    _set_session_cookie(response, record)
    return success_response(data=SessionInfo(**record.to_public_dict()), message="Session renewed")


@router.delete("/{session_id}")
def logout(
    session_id: str,
    response: Response,
    session: SessionRecord = Depends(deps.get_current_session),
    store: InMemorySessionStore = Depends(deps.get_session_store),
):
    """Revoke one session: your own, or any session for a super admin"""
    owned = session_id == session.session_id or any(
        s.session_id == session_id for s in store.list_for_user(session.user_id)
    )
    if not owned and session.admin_level != AdminLevel.SUPER_ADMIN:
        raise NotFoundError("Session not found")

    reason = "logout" if owned else f"revoked by user {session.user_id}"
    revoked = store.revoke(session_id, reason=reason)
    if session_id == session.session_id:
        response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return success_response(data={"revoked": revoked}, message="Session revoked")
