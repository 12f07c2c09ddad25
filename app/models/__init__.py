from .base import BaseModel
from .faculty import Faculty
from .department import Department
from .user import User
from .admin_role import AdminRole, AdminLevel
from .activity import Activity, ActivityStatus
from .participation import Participation, ParticipationStatus
from .audit_log import AuditLog
