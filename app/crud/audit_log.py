# File: app/crud/audit_log.py
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.audit_log import AuditLog
from app.schemas.audit_log import AuditLogCreate


class CRUDAuditLog(CRUDBase[AuditLog, AuditLogCreate, AuditLogCreate]):

    def record(
        self,
        db: Session,
        *,
        actor_user_id: Optional[int],
        action: str,
        target_type: str,
        target_id: Optional[int] = None,
        faculty_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Add an audit row to the caller's transaction without committing it"""
        db_obj = AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            faculty_id=faculty_id,
            details=details or {},
        )
        db.add(db_obj)
        return db_obj

    def get_for_target(self, db: Session, *, target_type: str, target_id: int) -> List[AuditLog]:
        return (
            db.query(AuditLog)
            .filter(AuditLog.target_type == target_type, AuditLog.target_id == target_id)
            .order_by(AuditLog.id)
            .all()
        )


audit_log = CRUDAuditLog(AuditLog)
