from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, Text, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.database import Base
import enum


class ParticipationStatus(enum.Enum):
    REGISTERED = "registered"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class Participation(Base):
    __tablename__ = "participations"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_id", name="uq_participations_user_activity"),
        CheckConstraint("checked_out_at IS NULL OR checked_in_at IS NOT NULL", name="ck_participations_checkout_needs_checkin"),
        CheckConstraint("checked_out_at IS NULL OR checked_out_at > checked_in_at", name="ck_participations_checkout_after_checkin"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(ParticipationStatus), nullable=False, default=ParticipationStatus.REGISTERED, index=True)
    registered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    user = relationship("User")
    activity = relationship("Activity", back_populates="participations")
