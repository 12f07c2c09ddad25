# File: app/schemas/session.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from app.schemas.user import User


class LoginRequest(BaseModel):
    """Login with either an email address or a student id"""
    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    remember_me: bool = False
    device_info: Optional[Dict[str, Any]] = None


class SessionInfo(BaseModel):
    user_id: int
    admin_level: Optional[str] = None
    faculty_id: Optional[int] = None
    permissions: List[str] = []
    issued_at: datetime
    expires_at: datetime
    last_accessed: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: Dict[str, Any] = {}
    remember_me: bool = False


class LoginResponse(SessionInfo):
    session_id: str
    user: Optional[User] = None


class SessionSummary(SessionInfo):
    """Admin view of a session; the bearer id is replaced by its public reference"""
    session_ref: str


class ForceLogoutRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class ForceLogoutResult(BaseModel):
    user_id: int
    revoked_sessions: int


class SweepResult(BaseModel):
    removed: int
    active: int
