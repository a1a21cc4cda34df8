"""Assignments router — classroom assignments and quiz submissions."""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from curriculum_ai.database import get_db
from curriculum_ai.middleware.auth import get_current_user, require_student, require_teacher
from curriculum_ai.models.assignment import Assignment, AssignmentSubmission
from curriculum_ai.models.classroom import Classroom
from curriculum_ai.models.lesson import Lesson
from curriculum_ai.models.user import User
from curriculum_ai.schemas.assignment import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    FileSubmission,
    QuizSubmission,
    SubmissionResponse,
)
from curriculum_ai.services.access import is_member, joined_classroom_ids
from curriculum_ai.services.lesson_store import LessonStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


def _assignment_to_response(a: Assignment, submission_status: Optional[str] = None) -> AssignmentResponse:
    return AssignmentResponse(
        id=a.id,
        title=a.title,
        description=a.description,
        classroom_id=a.classroom_id,
        lesson_id=a.lesson_id,
        teacher_id=a.teacher_id,
        due_date=a.due_date.isoformat() if a.due_date else None,
        created_at=a.created_at.isoformat(),
        submission_status=submission_status,
    )


def _student_name(student: Optional[User]) -> str:
    if student is None:
        return "Unknown Student"
    return student.full_name or student.email


def _submission_to_response(s: AssignmentSubmission, total: Optional[int] = None) -> SubmissionResponse:
    answers = json.loads(s.answers_json) if s.answers_json else []
    # feedback holds {"score", "total"} for auto-scored quizzes
    result = json.loads(s.feedback) if s.feedback else {}
    score = result.get("score")
    total = result.get("total", total)
    return SubmissionResponse(
        id=s.id,
        assignment_id=s.assignment_id,
        student_id=s.student_id,
        student_name=_student_name(s.student),
        status=s.status,
        answers=answers,
        grade=s.grade,
        score=score,
        total=total,
        notes=s.notes,
        file_url=s.file_url,
        submitted_at=s.submitted_at.isoformat() if s.submitted_at else None,
    )


def _student_status(db: Session, assignment_id: str, student_id: str) -> str:
    sub = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment_id,
        AssignmentSubmission.student_id == student_id,
    ).first()
    return sub.status if sub else "not_started"


def _get_or_create_submission(db: Session, assignment_id: str, student_id: str) -> AssignmentSubmission:
    """One submission row per student and assignment; resubmissions reuse it."""
    submission = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment_id,
        AssignmentSubmission.student_id == student_id,
    ).first()
    if not submission:
        submission = AssignmentSubmission(
            id=str(uuid.uuid4()),
            assignment_id=assignment_id,
            student_id=student_id,
        )
        db.add(submission)
    return submission


def _get_assignment(db: Session, assignment_id: str) -> Assignment:
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


def _get_owned_assignment(db: Session, assignment_id: str, teacher: User) -> Assignment:
    assignment = _get_assignment(db, assignment_id)
    if assignment.teacher_id != teacher.id:
        raise HTTPException(status_code=403, detail="Not your assignment")
    return assignment


@router.post("", response_model=AssignmentResponse, status_code=201)
def create_assignment(
    req: AssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Create an assignment in one of the teacher's classrooms.

    An assignment with the same title already in the classroom is returned
    as-is instead of creating a duplicate.
    """
    title = req.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")

    classroom = db.query(Classroom).filter(Classroom.id == req.classroom_id).first()
    if not classroom or classroom.teacher_id != current_user.id:
        raise HTTPException(status_code=403, detail="You don't have permission to add assignments to this classroom")

    if req.lesson_id:
        lesson = db.query(Lesson).filter(Lesson.id == req.lesson_id).first()
        if not lesson or lesson.teacher_id != current_user.id:
            raise HTTPException(status_code=404, detail="Lesson not found or access denied")

    existing = db.query(Assignment).filter(
        Assignment.classroom_id == classroom.id,
        Assignment.title == title,
    ).first()
    if existing:
        return _assignment_to_response(existing)

    due_date = req.due_date
    if due_date and due_date.tzinfo is not None:
        due_date = due_date.astimezone(timezone.utc).replace(tzinfo=None)

    assignment = Assignment(
        id=str(uuid.uuid4()),
        title=title,
        description=req.description,
        classroom_id=classroom.id,
        lesson_id=req.lesson_id,
        teacher_id=current_user.id,
        due_date=due_date,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return _assignment_to_response(assignment)


@router.get("", response_model=AssignmentListResponse)
def list_assignments(
    classroom_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role == "teacher":
        query = db.query(Assignment).filter(Assignment.teacher_id == current_user.id)
        if classroom_id:
            query = query.filter(Assignment.classroom_id == classroom_id)
        assignments = query.order_by(Assignment.created_at.desc()).all()
        return AssignmentListResponse(
            assignments=[_assignment_to_response(a) for a in assignments],
            total=len(assignments),
        )

    classroom_ids = joined_classroom_ids(db, current_user.id)
    if classroom_id:
        classroom_ids = [cid for cid in classroom_ids if cid == classroom_id]
    assignments = (
        db.query(Assignment)
        .filter(Assignment.classroom_id.in_(classroom_ids))
        .order_by(Assignment.created_at.desc())
        .all()
    ) if classroom_ids else []
    return AssignmentListResponse(
        assignments=[
            _assignment_to_response(a, _student_status(db, a.id, current_user.id))
            for a in assignments
        ],
        total=len(assignments),
    )


@router.get("/{assignment_id}", response_model=AssignmentResponse)
def get_assignment(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    assignment = _get_assignment(db, assignment_id)
    if current_user.role == "teacher":
        if assignment.teacher_id != current_user.id:
            raise HTTPException(status_code=403, detail="Not your assignment")
        return _assignment_to_response(assignment)

    if not is_member(db, assignment.classroom_id, current_user.id):
        raise HTTPException(status_code=403, detail="You are not a member of this classroom")
    return _assignment_to_response(assignment, _student_status(db, assignment.id, current_user.id))


@router.delete("/{assignment_id}", status_code=204)
def delete_assignment(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    assignment = _get_owned_assignment(db, assignment_id, current_user)
    db.delete(assignment)
    db.commit()


@router.post("/{assignment_id}/submit-quiz", response_model=SubmissionResponse)
def submit_quiz(
    assignment_id: str,
    req: QuizSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Score a student's quiz answers against the lesson's latest generated quiz.

    Resubmitting overwrites the previous attempt.
    """
    assignment = _get_assignment(db, assignment_id)
    if not is_member(db, assignment.classroom_id, current_user.id):
        raise HTTPException(status_code=403, detail="You are not a member of this classroom")
    if not assignment.lesson_id:
        raise HTTPException(status_code=400, detail="This assignment has no lesson quiz")

    row = LessonStore(db).latest_content(assignment.lesson_id)
    if row is None:
        raise HTTPException(status_code=409, detail="The quiz for this lesson has not been generated yet")

    questions = json.loads(row.quiz_json).get("questions", [])
    total = len(questions)
    if len(req.answers) != total:
        raise HTTPException(status_code=400, detail=f"Expected {total} answers, got {len(req.answers)}")

    score = sum(
        1 for answer, q in zip(req.answers, questions)
        if answer == q.get("correctAnswer")
    )
    percentage = round(100 * score / total) if total else 0

    submission = _get_or_create_submission(db, assignment.id, current_user.id)
    submission.status = "submitted"
    submission.answers_json = json.dumps(req.answers)
    submission.grade = str(percentage)
    submission.feedback = json.dumps({"score": score, "total": total})
    submission.submitted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(submission)

    logger.info(
        "Student %s submitted quiz for assignment %s: %d/%d",
        current_user.id, assignment.id, score, total,
    )
    return _submission_to_response(submission, total)


@router.get("/{assignment_id}/submissions", response_model=list[SubmissionResponse])
def list_submissions(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    assignment = _get_owned_assignment(db, assignment_id, current_user)
    return [_submission_to_response(s) for s in assignment.submissions]


@router.post("/{assignment_id}/submit", response_model=SubmissionResponse)
def submit_assignment(
    assignment_id: str,
    req: FileSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Hand in work for an assignment as an uploaded file URL with optional notes.

    Resubmitting replaces the file and notes and marks the submission completed.
    """
    file_url = req.file_url.strip()
    if not file_url:
        raise HTTPException(status_code=400, detail="A file URL is required")

    assignment = _get_assignment(db, assignment_id)
    if not is_member(db, assignment.classroom_id, current_user.id):
        raise HTTPException(status_code=403, detail="You are not enrolled in this classroom")

    submission = _get_or_create_submission(db, assignment.id, current_user.id)
    submission.status = "completed"
    submission.file_url = file_url
    submission.notes = req.notes
    submission.submitted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(submission)

    logger.info("Student %s submitted assignment %s", current_user.id, assignment.id)
    return _submission_to_response(submission)


@router.get("/{assignment_id}/quiz-results", response_model=list[SubmissionResponse])
def quiz_results(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Scored quiz attempts for an assignment, most recent first."""
    assignment = _get_owned_assignment(db, assignment_id, current_user)
    submissions = (
        db.query(AssignmentSubmission)
        .filter(
            AssignmentSubmission.assignment_id == assignment.id,
            AssignmentSubmission.answers_json.isnot(None),
        )
        .order_by(AssignmentSubmission.submitted_at.desc())
        .all()
    )
    return [_submission_to_response(s) for s in submissions]
