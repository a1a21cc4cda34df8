"""User model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from curriculum_ai.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")  # student | teacher
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    lessons = relationship("Lesson", back_populates="teacher")
    taught_classrooms = relationship("Classroom", back_populates="teacher")
    memberships = relationship("ClassroomStudent", back_populates="student")
    messages = relationship("Message", back_populates="user")
