"""Assignment and quiz submission schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AssignmentCreate(BaseModel):
    title: str
    description: Optional[str] = None
    classroom_id: str
    lesson_id: Optional[str] = None
    due_date: Optional[datetime] = None


class AssignmentResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    classroom_id: str
    lesson_id: Optional[str] = None
    teacher_id: str
    due_date: Optional[str] = None
    created_at: str
    submission_status: Optional[str] = None  # only filled for students

    class Config:
        from_attributes = True


class AssignmentListResponse(BaseModel):
    assignments: list[AssignmentResponse]
    total: int


class QuizSubmission(BaseModel):
    answers: list[int]


class FileSubmission(BaseModel):
    file_url: str
    notes: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: str
    assignment_id: str
    student_id: str
    student_name: Optional[str] = None
    status: str
    answers: list[int] = []
    grade: Optional[str] = None
    score: Optional[int] = None
    total: Optional[int] = None
    notes: Optional[str] = None
    file_url: Optional[str] = None
    submitted_at: Optional[str] = None
