# File: app/schemas/audit_log.py
from pydantic import BaseModel
from typing import Any, Dict, Optional


class AuditLogCreate(BaseModel):
    actor_user_id: Optional[int] = None
    action: str
    target_type: str
    target_id: Optional[int] = None
    faculty_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
