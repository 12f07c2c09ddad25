from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class Faculty(BaseModel):
    __tablename__ = "faculties"

    name = Column(String(255), nullable=False)
    code = Column(String(10), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    departments = relationship("Department", back_populates="faculty")
