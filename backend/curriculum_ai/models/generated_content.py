"""Generated content model — AI-produced lesson body and quiz for a lesson."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from curriculum_ai.database import Base


class GeneratedContent(Base):
    __tablename__ = "lesson_ai_content"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    lesson_id = Column(String(36), ForeignKey("lessons.id"), nullable=False, index=True)

    content_json = Column(Text, nullable=False)   # {"title", "sections", "keyTerms"}
    quiz_json = Column(Text, nullable=False)      # {"questions": [...]}
    is_fallback = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    lesson = relationship("Lesson", back_populates="ai_contents")
