"""Relational store operations used by the lesson content generator."""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from curriculum_ai.models.generated_content import GeneratedContent
from curriculum_ai.models.lesson import Lesson

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class LessonStore:
    """Thin wrapper around a SQLAlchemy session. Every write commits."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        return self.db.query(Lesson).filter(Lesson.id == lesson_id).first()

    def latest_content(self, lesson_id: str) -> Optional[GeneratedContent]:
        return (
            self.db.query(GeneratedContent)
            .filter(GeneratedContent.lesson_id == lesson_id)
            .order_by(GeneratedContent.created_at.desc())
            .first()
        )

    def is_in_flight(self, lesson: Lesson, stale_after: timedelta) -> bool:
        if not lesson.ai_processing_needed or lesson.ai_processing_started_at is None:
            return False
        return datetime.now(timezone.utc) - _as_utc(lesson.ai_processing_started_at) < stale_after

    def claim_generation(self, lesson_id: str, stale_after: timedelta) -> bool:
        """Set the in-flight marker unless a fresh one is already there.

        Returns False when another run still holds the marker. This is a plain
        read followed by a conditional write, not a lock.
        """
        lesson = self.get_lesson(lesson_id)
        if lesson is None or self.is_in_flight(lesson, stale_after):
            return False
        lesson.ai_processing_needed = True
        lesson.ai_processing_started_at = datetime.now(timezone.utc)
        self._commit()
        return True

    def mark_processing(self, lesson_id: str) -> None:
        lesson = self.get_lesson(lesson_id)
        if lesson is None:
            return
        lesson.ai_processing_needed = True
        lesson.ai_processing_started_at = datetime.now(timezone.utc)
        self._commit()

    def insert_content(
        self,
        lesson_id: str,
        content: dict,
        quiz: dict,
        is_fallback: bool,
        replace: bool = False,
    ) -> GeneratedContent:
        if replace:
            removed = self.db.query(GeneratedContent).filter(GeneratedContent.lesson_id == lesson_id).delete()
            if removed:
                logger.info("Lesson %s: replacing %d earlier content row(s)", lesson_id, removed)
        row = GeneratedContent(
            lesson_id=lesson_id,
            content_json=json.dumps(content),
            quiz_json=json.dumps(quiz),
            is_fallback=is_fallback,
        )
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        return row

    def set_status(self, lesson_id: str, ai_processed: bool, ai_processing_needed: bool) -> None:
        lesson = self.get_lesson(lesson_id)
        if lesson is None:
            return
        lesson.ai_processed = ai_processed
        lesson.ai_processing_needed = ai_processing_needed
        if not ai_processing_needed:
            lesson.ai_processing_started_at = None
        self._commit()
