from .user import user
from .admin_role import admin_role
from .activity import activity
from .participation import participation
from .audit_log import audit_log

__all__ = ["user", "admin_role", "activity", "participation", "audit_log"]
