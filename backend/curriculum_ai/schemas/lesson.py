"""Lesson and AI content schemas."""

from typing import Optional

from pydantic import BaseModel


class LessonResponse(BaseModel):
    id: str
    teacher_id: str
    title: str
    description: Optional[str] = None
    subject: str
    grade_level: str
    file_url: Optional[str] = None
    ai_processed: bool
    ai_processing_needed: bool
    created_at: str

    class Config:
        from_attributes = True


class LessonListResponse(BaseModel):
    lessons: list[LessonResponse]
    total: int


class LessonUploadResponse(BaseModel):
    message: str
    lesson: LessonResponse
    assignment_id: Optional[str] = None
    ai_processing: bool = False


class GenerateStartedResponse(BaseModel):
    message: str
    processing: bool = False
    already_exists: bool = False
    using_fallback: bool = False
    is_fallback: Optional[bool] = None
