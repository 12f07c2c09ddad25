# File: app/schemas/participation.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from app.models.participation import ParticipationStatus


class Participation(BaseModel):
    id: int
    user_id: int
    activity_id: int
    status: ParticipationStatus
    registered_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ScanResult(BaseModel):
    participation: Participation
    action: str
    changed: bool
    message: str
