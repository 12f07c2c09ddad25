# File: app/crud/activity.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.core.authorization import scope_query
from app.core.session_store import SessionRecord
from app.models.activity import Activity, ActivityStatus
from app.models.department import Department
from app.models.participation import Participation, ParticipationStatus
from app.schemas.activity import ActivityCreate, ActivityUpdate

OPEN_STATUSES = (ActivityStatus.PUBLISHED, ActivityStatus.ONGOING)


class CRUDActivity(CRUDBase[Activity, ActivityCreate, ActivityUpdate]):

    def get_for_update(self, db: Session, *, activity_id: int) -> Optional[Activity]:
        """Load the activity row holding a row lock until the transaction ends"""
        return (
            db.query(Activity)
            .filter(Activity.id == activity_id)
            .with_for_update()
            .first()
        )

    def create_with_owner(self, db: Session, *, obj_in: ActivityCreate, created_by: int) -> Activity:
        activity_data = obj_in.model_dump()
        activity_data["created_by"] = created_by

        db_obj = Activity(**activity_data)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_multi_scoped(
        self, db: Session, *, session: SessionRecord, skip: int = 0, limit: int = 100
    ) -> List[Activity]:
        query = db.query(Activity).outerjoin(Department, Activity.department_id == Department.id)
        if session.is_admin:
            faculty_expr = func.coalesce(Activity.faculty_id, Department.faculty_id)
            query = scope_query(query, faculty_expr, session, owner_column=Activity.created_by)
        else:
            query = query.filter(Activity.status.in_(OPEN_STATUSES))
        return query.order_by(Activity.start_time, Activity.id).offset(skip).limit(limit).all()

    def get_due_to_start(self, db: Session, *, now: datetime) -> List[Activity]:
        return (
            db.query(Activity)
            .filter(
                Activity.status.in_((ActivityStatus.DRAFT, ActivityStatus.PUBLISHED)),
                Activity.start_time <= now,
                Activity.end_time > now,
            )
            .all()
        )

    def get_due_to_end(self, db: Session, *, now: datetime) -> List[Activity]:
        """Also catches draft and published activities whose whole window passed between runs"""
        return (
            db.query(Activity)
            .filter(
                Activity.status.in_((ActivityStatus.DRAFT, ActivityStatus.PUBLISHED, ActivityStatus.ONGOING)),
                Activity.end_time <= now,
            )
            .all()
        )

    def get_unfinalized(self, db: Session, *, ended_before: datetime) -> List[Activity]:
        """Completed activities that still hold registered or checked-out participations"""
        return (
            db.query(Activity)
            .filter(
                Activity.status == ActivityStatus.COMPLETED,
                Activity.end_time <= ended_before,
                Activity.participations.any(
                    Participation.status.in_((ParticipationStatus.REGISTERED, ParticipationStatus.CHECKED_OUT))
                ),
            )
            .order_by(Activity.end_time)
            .all()
        )


activity = CRUDActivity(Activity)
