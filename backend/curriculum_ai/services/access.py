"""Shared ownership / membership checks for routers."""

from sqlalchemy.orm import Session

from curriculum_ai.models.assignment import Assignment
from curriculum_ai.models.classroom import ClassroomLesson, ClassroomStudent
from curriculum_ai.models.lesson import Lesson
from curriculum_ai.models.user import User


def joined_classroom_ids(db: Session, user_id: str) -> list[str]:
    return [
        m.classroom_id for m in
        db.query(ClassroomStudent).filter(ClassroomStudent.student_id == user_id).all()
    ]


def is_member(db: Session, classroom_id: str, user_id: str) -> bool:
    return db.query(ClassroomStudent).filter(
        ClassroomStudent.classroom_id == classroom_id,
        ClassroomStudent.student_id == user_id,
    ).first() is not None


def can_view_lesson(db: Session, lesson: Lesson, user: User) -> bool:
    """Teachers see their own lessons. Students see lessons made visible in, or
    assigned to, a classroom they joined.
    """
    if user.role == "teacher":
        return lesson.teacher_id == user.id
    classroom_ids = joined_classroom_ids(db, user.id)
    if not classroom_ids:
        return False
    shared = db.query(ClassroomLesson).filter(
        ClassroomLesson.lesson_id == lesson.id,
        ClassroomLesson.classroom_id.in_(classroom_ids),
        ClassroomLesson.visible.is_(True),
    ).first()
    if shared:
        return True
    return db.query(Assignment).filter(
        Assignment.lesson_id == lesson.id,
        Assignment.classroom_id.in_(classroom_ids),
    ).first() is not None
