from sqlalchemy import Column, Integer, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class AdminLevel(enum.Enum):
    SUPER_ADMIN = "super_admin"
    FACULTY_ADMIN = "faculty_admin"
    REGULAR_ADMIN = "regular_admin"


class AdminRole(BaseModel):
    __tablename__ = "admin_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    admin_level = Column(Enum(AdminLevel), nullable=False, default=AdminLevel.REGULAR_ADMIN)
    # null for super admins, required for faculty and regular admins
    faculty_id = Column(Integer, ForeignKey("faculties.id", ondelete="CASCADE"), nullable=True, index=True)
    permissions = Column(JSON, nullable=False, default=list)

    user = relationship("User", back_populates="admin_role")
    faculty = relationship("Faculty")
