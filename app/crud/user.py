# File: app/crud/user.py
from typing import Any, Dict, Optional, Union
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.core.security import get_password_hash, verify_password


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def get_by_student_id(self, db: Session, *, student_id: str) -> Optional[User]:
        return db.query(User).filter(User.student_id == student_id.strip()).first()

    def get_by_identifier(self, db: Session, *, identifier: str) -> Optional[User]:
        """Look a user up by email when the identifier looks like one, else by student id"""
        if "@" in identifier:
            return self.get_by_email(db, email=identifier)
        return self.get_by_student_id(db, student_id=identifier)

    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        create_data = obj_in.model_dump(exclude={"password"})
        create_data["email"] = create_data["email"].strip().lower()
        create_data["hashed_password"] = get_password_hash(obj_in.password)

        db_obj = User(**create_data)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(
        self, db: Session, *, db_obj: User, obj_in: Union[UserUpdate, Dict[str, Any]]
    ) -> User:
        if isinstance(obj_in, dict):
            update_data = dict(obj_in)
        else:
            update_data = obj_in.model_dump(exclude_unset=True)
        if update_data.get("password"):
            update_data["hashed_password"] = get_password_hash(update_data.pop("password"))
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def authenticate(self, db: Session, *, identifier: str, password: str) -> Optional[User]:
        user = self.get_by_identifier(db, identifier=identifier)
        if not user:
            # Keep timing the same for unknown accounts
            verify_password(password, get_password_hash("not-a-real-password"))
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def is_active(self, user: User) -> bool:
        return bool(user.is_active)


user = CRUDUser(User)
