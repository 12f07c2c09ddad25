# File: app/core/exceptions.py
"""Domain errors raised by the session, credential and participation layers.

Each family maps to one HTTP status in ``app.main``. Public messages for
authentication and credential failures never say which check failed.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.data = data


# ---------------------------
# 401: no or invalid session
# ---------------------------
class AuthenticationError(AppError):
    status_code = 401
    public_message = "Authentication required"

    def __init__(self, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        # Callers may log a detailed reason but the client always gets the same text
        super().__init__(self.public_message, data)
        self.reason = message


class SessionNotFound(AuthenticationError):
    pass


class SessionExpired(AuthenticationError):
    pass


class InvalidLogin(AuthenticationError):
    public_message = "Invalid login credentials"


# ---------------------------
# 403: valid session, insufficient scope
# ---------------------------
class AuthorizationError(AppError):
    status_code = 403
    public_message = "Insufficient permissions"


class Forbidden(AuthorizationError):
    pass


# ---------------------------
# 401: QR credential rejected
# ---------------------------
class CredentialError(AppError):
    status_code = 401
    public_message = "Invalid or expired QR credential"

    def __init__(self, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(self.public_message, None)
        self.reason = message


class InvalidCredential(CredentialError):
    pass


class ExpiredCredential(CredentialError):
    pass


# ---------------------------
# 409: conflicting state
# ---------------------------
class StateConflictError(AppError):
    status_code = 409
    public_message = "Conflicting state"

    def __init__(self, message: Optional[str] = None, current_state: Optional[str] = None):
        data = {"current_state": current_state} if current_state else None
        super().__init__(message, data)
        self.current_state = current_state


class InvalidTransition(StateConflictError):
    pass


class AlreadyRegistered(StateConflictError):
    pass


class AlreadyCheckedIn(StateConflictError):
    pass


class ActivityFull(StateConflictError):
    pass


class ActivityNotOpen(StateConflictError):
    pass


# ---------------------------
# 404 / 400
# ---------------------------
class NotFoundError(AppError):
    status_code = 404
    public_message = "Resource not found"


class NotRegistered(NotFoundError):
    public_message = "User is not registered for this activity"


class ValidationError(AppError):
    status_code = 400
    public_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        super().__init__(message, {"errors": errors or {}})
        self.errors = errors or {}


# ---------------------------
# 503: backing store unavailable
# ---------------------------
class StoreUnavailableError(AppError):
    status_code = 503
    public_message = "Service temporarily unavailable"


class ScanTimeout(StoreUnavailableError):
    public_message = "Scan timed out, please retry"
