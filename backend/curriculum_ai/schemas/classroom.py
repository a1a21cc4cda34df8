"""Classroom request/response schemas."""

from typing import Optional

from pydantic import BaseModel


class ClassroomCreate(BaseModel):
    name: str
    description: Optional[str] = None
    grade_level: Optional[str] = None


class ClassroomJoin(BaseModel):
    join_code: str


class ClassroomResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    grade_level: Optional[str] = None
    teacher_id: str
    join_code: Optional[str] = None
    student_count: int = 0
    created_at: str

    class Config:
        from_attributes = True


class ClassroomListResponse(BaseModel):
    classrooms: list[ClassroomResponse]


class StudentResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    joined_at: str


class ClassroomLessonAdd(BaseModel):
    lesson_id: str
    visible: bool = True


class ClassroomLessonResponse(BaseModel):
    id: str
    classroom_id: str
    lesson_id: str
    visible: bool
    title: str
    subject: str
    grade_level: str
    ai_processed: bool
    created_at: str


class StreamItem(BaseModel):
    type: str  # assignment | lesson
    id: str
    title: str
    description: Optional[str] = None
    classroom_id: str
    classroom_name: str
    lesson_id: Optional[str] = None
    due_date: Optional[str] = None
    created_at: str
