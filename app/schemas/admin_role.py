# File: app/schemas/admin_role.py
from pydantic import BaseModel, model_validator
from typing import List, Optional
from app.models.admin_role import AdminLevel


class AdminRoleCreate(BaseModel):
    user_id: int
    admin_level: AdminLevel = AdminLevel.REGULAR_ADMIN
    faculty_id: Optional[int] = None
    permissions: List[str] = []

    @model_validator(mode="after")
    def check_faculty(self):
        if self.admin_level != AdminLevel.SUPER_ADMIN and self.faculty_id is None:
            raise ValueError("faculty_id is required for faculty and regular admins")
        return self


class AdminRole(BaseModel):
    id: int
    user_id: int
    admin_level: AdminLevel
    faculty_id: Optional[int] = None
    permissions: List[str] = []

    class Config:
        from_attributes = True
