# File: app/api/v1/endpoints/participations.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app import crud
from app.api import deps
from app.core.session_store import SessionRecord
from app.schemas.common import success_response
from app.schemas.participation import Participation

router = APIRouter()


@router.get("/me")
def read_my_participations(
    db: Session = Depends(deps.get_db),
    session: SessionRecord = Depends(deps.get_current_session),
):
    participations = crud.participation.get_by_user(db, user_id=session.user_id)
    return success_response(data=[Participation.model_validate(p) for p in participations])
