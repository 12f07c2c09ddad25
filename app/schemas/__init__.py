# File: app/schemas/__init__.py
from .common import success_response, error_response
from .user import User, UserCreate, UserUpdate, UserBase
from .admin_role import AdminRole, AdminRoleCreate
from .audit_log import AuditLogCreate
from .session import (
    LoginRequest, LoginResponse, SessionInfo, SessionSummary,
    ForceLogoutRequest, ForceLogoutResult, SweepResult,
)
from .credential import QRCredential, ScanRequest
from .activity import (
    Activity, ActivityBase, ActivityCreate, ActivityUpdate,
    FinalizeRequest, FinalizeResult,
)
from .participation import Participation, ScanResult

__all__ = [
    "success_response", "error_response",
    "User", "UserCreate", "UserUpdate", "UserBase",
    "AdminRole", "AdminRoleCreate",
    "AuditLogCreate",
    "LoginRequest", "LoginResponse", "SessionInfo", "SessionSummary",
    "ForceLogoutRequest", "ForceLogoutResult", "SweepResult",
    "QRCredential", "ScanRequest",
    "Activity", "ActivityBase", "ActivityCreate", "ActivityUpdate",
    "FinalizeRequest", "FinalizeResult",
    "Participation", "ScanResult",
]
