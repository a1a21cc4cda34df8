"""Lesson model — a teacher-owned unit of curriculum with an attached document."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from curriculum_ai.database import Base


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(100), nullable=False)
    grade_level = Column(String(50), nullable=False)
    file_url = Column(Text, nullable=True)
    file_path = Column(Text, nullable=True)

    # AI generation status, polled by the UI
    ai_processed = Column(Boolean, nullable=False, default=False)
    ai_processing_needed = Column(Boolean, nullable=False, default=False)
    ai_processing_started_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    teacher = relationship("User", back_populates="lessons")
    ai_contents = relationship(
        "GeneratedContent",
        back_populates="lesson",
        cascade="all, delete-orphan",
        order_by="GeneratedContent.created_at",
    )
    classroom_links = relationship("ClassroomLesson", back_populates="lesson", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="lesson", cascade="all, delete-orphan")
