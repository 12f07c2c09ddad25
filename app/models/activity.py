from sqlalchemy import Column, String, Text, Integer, ForeignKey, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class ActivityStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Activity(BaseModel):
    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_activities_time_range"),
        CheckConstraint("max_participants IS NULL OR max_participants > 0", name="ck_activities_max_participants"),
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=False, default="")
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    max_participants = Column(Integer, nullable=True)
    status = Column(Enum(ActivityStatus), nullable=False, default=ActivityStatus.DRAFT, index=True)
    faculty_id = Column(Integer, ForeignKey("faculties.id", ondelete="SET NULL"), nullable=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    faculty = relationship("Faculty")
    department = relationship("Department")
    participations = relationship("Participation", back_populates="activity")
