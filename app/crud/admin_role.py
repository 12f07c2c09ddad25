# File: app/crud/admin_role.py
from typing import Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.admin_role import AdminRole
from app.schemas.admin_role import AdminRoleCreate


class CRUDAdminRole(CRUDBase[AdminRole, AdminRoleCreate, AdminRoleCreate]):

    def get_by_user(self, db: Session, *, user_id: int) -> Optional[AdminRole]:
        return db.query(AdminRole).filter(AdminRole.user_id == user_id).first()


admin_role = CRUDAdminRole(AdminRole)
