"""Classrooms router — create, list, join classrooms and share lessons with them."""

import logging
import secrets
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from curriculum_ai.database import get_db
from curriculum_ai.middleware.auth import get_current_user, require_student, require_teacher
from curriculum_ai.models.assignment import Assignment
from curriculum_ai.models.classroom import Classroom, ClassroomLesson, ClassroomStudent
from curriculum_ai.models.lesson import Lesson
from curriculum_ai.models.user import User
from curriculum_ai.schemas.classroom import (
    ClassroomCreate,
    ClassroomJoin,
    ClassroomLessonAdd,
    ClassroomLessonResponse,
    ClassroomListResponse,
    ClassroomResponse,
    StreamItem,
    StudentResponse,
)
from curriculum_ai.services.access import is_member, joined_classroom_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/classrooms", tags=["classrooms"])


def _classroom_to_response(classroom: Classroom, show_code: bool = True) -> ClassroomResponse:
    return ClassroomResponse(
        id=classroom.id,
        name=classroom.name,
        description=classroom.description,
        grade_level=classroom.grade_level,
        teacher_id=classroom.teacher_id,
        join_code=classroom.join_code if show_code else None,
        student_count=len(classroom.students),
        created_at=classroom.created_at.isoformat(),
    )


def _link_to_response(link: ClassroomLesson) -> ClassroomLessonResponse:
    return ClassroomLessonResponse(
        id=link.id,
        classroom_id=link.classroom_id,
        lesson_id=link.lesson_id,
        visible=link.visible,
        title=link.lesson.title,
        subject=link.lesson.subject,
        grade_level=link.lesson.grade_level,
        ai_processed=bool(link.lesson.ai_processed),
        created_at=link.created_at.isoformat(),
    )


def _get_classroom(db: Session, classroom_id: str) -> Classroom:
    classroom = db.query(Classroom).filter(Classroom.id == classroom_id).first()
    if not classroom:
        raise HTTPException(status_code=404, detail="Classroom not found")
    return classroom


def _get_owned_classroom(db: Session, classroom_id: str, teacher: User) -> Classroom:
    classroom = _get_classroom(db, classroom_id)
    if classroom.teacher_id != teacher.id:
        raise HTTPException(status_code=403, detail="Not your classroom")
    return classroom


def _check_access(db: Session, classroom: Classroom, user: User) -> None:
    if user.role == "teacher":
        if classroom.teacher_id != user.id:
            raise HTTPException(status_code=403, detail="Not your classroom")
    elif not is_member(db, classroom.id, user.id):
        raise HTTPException(status_code=403, detail="You are not a member of this classroom")


@router.post("", response_model=ClassroomResponse, status_code=201)
def create_classroom(
    req: ClassroomCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Create a new classroom (teacher only). Generates a random join code."""
    if not req.name.strip():
        raise HTTPException(status_code=400, detail="Classroom name is required")

    classroom = Classroom(
        id=str(uuid.uuid4()),
        name=req.name.strip(),
        description=req.description,
        grade_level=req.grade_level,
        teacher_id=current_user.id,
        join_code=secrets.token_hex(4).upper(),  # 8 char hex code
    )
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    return _classroom_to_response(classroom)


@router.get("", response_model=ClassroomListResponse)
def list_classrooms(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List classrooms the current user teaches (teacher) or has joined (student)."""
    if current_user.role == "teacher":
        classrooms = (
            db.query(Classroom)
            .filter(Classroom.teacher_id == current_user.id)
            .order_by(Classroom.created_at.desc())
            .all()
        )
        return ClassroomListResponse(classrooms=[_classroom_to_response(c) for c in classrooms])

    classroom_ids = joined_classroom_ids(db, current_user.id)
    classrooms = db.query(Classroom).filter(Classroom.id.in_(classroom_ids)).all() if classroom_ids else []
    return ClassroomListResponse(classrooms=[_classroom_to_response(c, show_code=False) for c in classrooms])


@router.get("/stream", response_model=list[StreamItem])
def classroom_stream(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Assignments and visible shared lessons across every joined classroom, newest first."""
    classroom_ids = joined_classroom_ids(db, current_user.id)
    if not classroom_ids:
        return []

    assignments = db.query(Assignment).filter(Assignment.classroom_id.in_(classroom_ids)).all()
    links = db.query(ClassroomLesson).filter(
        ClassroomLesson.classroom_id.in_(classroom_ids),
        ClassroomLesson.visible.is_(True),
    ).all()

    dated = [
        (a.created_at, StreamItem(
            type="assignment",
            id=a.id,
            title=a.title,
            description=a.description,
            classroom_id=a.classroom_id,
            classroom_name=a.classroom.name,
            lesson_id=a.lesson_id,
            due_date=a.due_date.isoformat() if a.due_date else None,
            created_at=a.created_at.isoformat(),
        ))
        for a in assignments
    ]
    dated += [
        (link.created_at, StreamItem(
            type="lesson",
            id=link.id,
            title=link.lesson.title,
            description=link.lesson.description,
            classroom_id=link.classroom_id,
            classroom_name=link.classroom.name,
            lesson_id=link.lesson_id,
            created_at=link.created_at.isoformat(),
        ))
        for link in links
    ]
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in dated]


@router.post("/join", response_model=ClassroomResponse)
def join_classroom(
    req: ClassroomJoin,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Join a classroom using its join code (students only)."""
    code = req.join_code.strip().upper()
    if not code:
        raise HTTPException(status_code=400, detail="Join code is required")

    classroom = db.query(Classroom).filter(Classroom.join_code == code).first()
    if not classroom:
        raise HTTPException(status_code=404, detail="Invalid join code")

    if is_member(db, classroom.id, current_user.id):
        raise HTTPException(status_code=409, detail="You are already a member of this classroom")

    db.add(ClassroomStudent(
        id=str(uuid.uuid4()),
        classroom_id=classroom.id,
        student_id=current_user.id,
    ))
    db.commit()
    db.refresh(classroom)
    logger.info("Student %s joined classroom %s", current_user.id, classroom.id)
    return _classroom_to_response(classroom, show_code=False)


@router.get("/{classroom_id}", response_model=ClassroomResponse)
def get_classroom(
    classroom_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    classroom = _get_classroom(db, classroom_id)
    _check_access(db, classroom, current_user)
    return _classroom_to_response(classroom, show_code=current_user.role == "teacher")


@router.delete("/{classroom_id}", status_code=204)
def delete_classroom(
    classroom_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    classroom = _get_owned_classroom(db, classroom_id, current_user)
    db.delete(classroom)
    db.commit()


@router.get("/{classroom_id}/students", response_model=list[StudentResponse])
def list_students(
    classroom_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    classroom = _get_owned_classroom(db, classroom_id, current_user)
    return [
        StudentResponse(
            id=m.student.id,
            email=m.student.email,
            full_name=m.student.full_name,
            joined_at=m.joined_at.isoformat(),
        )
        for m in sorted(classroom.students, key=lambda m: m.joined_at)
    ]


@router.get("/{classroom_id}/lessons", response_model=list[ClassroomLessonResponse])
def list_classroom_lessons(
    classroom_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Lessons shared with a classroom. Students only see visible ones."""
    classroom = _get_classroom(db, classroom_id)
    _check_access(db, classroom, current_user)

    query = db.query(ClassroomLesson).filter(ClassroomLesson.classroom_id == classroom_id)
    if current_user.role != "teacher":
        query = query.filter(ClassroomLesson.visible.is_(True))
    return [_link_to_response(link) for link in query.order_by(ClassroomLesson.created_at.desc()).all()]


@router.post("/{classroom_id}/lessons", response_model=ClassroomLessonResponse, status_code=201)
def add_classroom_lesson(
    classroom_id: str,
    req: ClassroomLessonAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Share one of the teacher's lessons with a classroom, or update its visibility."""
    _get_owned_classroom(db, classroom_id, current_user)

    lesson = db.query(Lesson).filter(Lesson.id == req.lesson_id).first()
    if not lesson or lesson.teacher_id != current_user.id:
        raise HTTPException(status_code=404, detail="Lesson not found or access denied")

    link = db.query(ClassroomLesson).filter(
        ClassroomLesson.classroom_id == classroom_id,
        ClassroomLesson.lesson_id == lesson.id,
    ).first()
    if link:
        link.visible = req.visible
    else:
        link = ClassroomLesson(
            id=str(uuid.uuid4()),
            classroom_id=classroom_id,
            lesson_id=lesson.id,
            teacher_id=current_user.id,
            visible=req.visible,
        )
        db.add(link)
    db.commit()
    db.refresh(link)
    return _link_to_response(link)


@router.delete("/{classroom_id}/lessons/{lesson_id}", status_code=204)
def remove_classroom_lesson(
    classroom_id: str,
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    _get_owned_classroom(db, classroom_id, current_user)
    link = db.query(ClassroomLesson).filter(
        ClassroomLesson.classroom_id == classroom_id,
        ClassroomLesson.lesson_id == lesson_id,
    ).first()
    if not link:
        raise HTTPException(status_code=404, detail="Lesson is not shared with this classroom")
    db.delete(link)
    db.commit()
