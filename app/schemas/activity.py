# File: app/schemas/activity.py
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import datetime
from app.models.activity import ActivityStatus


class ActivityBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    location: str = Field("", max_length=255)
    start_time: datetime
    end_time: datetime
    max_participants: Optional[int] = Field(None, gt=0)
    faculty_id: Optional[int] = None
    department_id: Optional[int] = None


class ActivityCreate(ActivityBase):
    status: ActivityStatus = ActivityStatus.DRAFT

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ActivityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, gt=0)
    status: Optional[ActivityStatus] = None


class Activity(ActivityBase):
    id: int
    status: ActivityStatus
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FinalizeRequest(BaseModel):
    override: bool = False


class FinalizeResult(BaseModel):
    activity_id: int
    completed: int
    no_show: int
    still_checked_in: List[int] = []
