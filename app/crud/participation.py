# File: app/crud/participation.py
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.participation import Participation, ParticipationStatus


class CRUDParticipation:
    """Participation rows are only written through compare-and-set updates.

    Status changes go through ``app.services.participation_state_machine``.
    """

    def __init__(self, model=Participation):
        self.model = model

    def get(self, db: Session, id: int) -> Optional[Participation]:
        return db.query(Participation).filter(Participation.id == id).first()

    def get_by_user_activity(self, db: Session, *, user_id: int, activity_id: int) -> Optional[Participation]:
        return db.query(Participation).filter(
            Participation.user_id == user_id,
            Participation.activity_id == activity_id
        ).first()

    def count_for_activity(self, db: Session, *, activity_id: int) -> int:
        return db.query(func.count(Participation.id)).filter(
            Participation.activity_id == activity_id
        ).scalar() or 0

    def get_by_activity(
        self, db: Session, *, activity_id: int, status: Optional[ParticipationStatus] = None
    ) -> List[Participation]:
        query = db.query(Participation).filter(Participation.activity_id == activity_id)
        if status is not None:
            query = query.filter(Participation.status == status)
        return query.order_by(Participation.id).all()

    def get_by_user(self, db: Session, *, user_id: int) -> List[Participation]:
        return (
            db.query(Participation)
            .filter(Participation.user_id == user_id)
            .order_by(Participation.registered_at.desc(), Participation.id.desc())
            .all()
        )

    def add_registration(self, db: Session, *, user_id: int, activity_id: int) -> Participation:
        db_obj = Participation(
            user_id=user_id,
            activity_id=activity_id,
            status=ParticipationStatus.REGISTERED,
        )
        db.add(db_obj)
        db.flush()
        return db_obj

    def compare_and_set(
        self,
        db: Session,
        *,
        participation_id: int,
        expected: ParticipationStatus,
        values: Dict[str, Any],
    ) -> bool:
        """UPDATE ... WHERE id = :id AND status = :expected; True when the row was ours"""
        updated = (
            db.query(Participation)
            .filter(Participation.id == participation_id, Participation.status == expected)
            .update(values, synchronize_session=False)
        )
        return updated == 1


participation = CRUDParticipation()
