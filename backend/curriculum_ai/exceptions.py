"""
Domain exceptions for Curriculum AI.

Each carries a machine-readable error_code and the HTTP status the API
answers with when it escapes a route.
"""

from typing import Any, Dict, Optional


class CurriculumError(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)


class LessonGenerationError(CurriculumError):
    """The content stage of the generation pipeline failed."""

    def __init__(self, message: str, lesson_id: Optional[str] = None):
        super().__init__(
            message,
            error_code="GENERATION_FAILED",
            status_code=500,
            context={"lesson_id": lesson_id} if lesson_id else None,
        )


class GenerationInProgressError(CurriculumError):
    """Another generation run for the same lesson is still in flight."""

    def __init__(self, lesson_id: str):
        super().__init__(
            "AI content generation is already in progress for this lesson",
            error_code="GENERATION_IN_PROGRESS",
            status_code=409,
            context={"lesson_id": lesson_id},
        )
