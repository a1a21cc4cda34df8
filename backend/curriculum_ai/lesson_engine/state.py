"""Lesson engine state definitions — TypedDict for graph state and Pydantic models for LLM output."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field
from typing_extensions import TypedDict


# ── Pydantic models (shape checks for LLM output) ─────────────────────────────

class LessonSectionSchema(BaseModel):
    title: str
    content: str
    key_points: list[str] = Field(alias="keyPoints")


class KeyTermSchema(BaseModel):
    term: str
    definition: str


class LessonContentSchema(BaseModel):
    """Structured lesson body: ordered sections plus a key-term glossary."""
    title: str
    sections: list[LessonSectionSchema] = Field(min_length=1)
    key_terms: list[KeyTermSchema] = Field(alias="keyTerms")


class QuizQuestionSchema(BaseModel):
    question: str
    options: list[str] = Field(min_length=4, max_length=4)
    # strict: "2" is not an option index
    correct_answer: int = Field(alias="correctAnswer", ge=0, le=3, strict=True)
    explanation: str = ""


class QuizSchema(BaseModel):
    questions: list[QuizQuestionSchema] = Field(min_length=1)


# ── TypedDict for the graph state ─────────────────────────────────────────────

class LessonGenerationState(TypedDict, total=False):
    # Input
    lesson_id: str
    title: str
    description: str
    subject: str
    grade_level: str
    document_url: str
    force_fallback: bool

    # build_prompts
    content_prompt: str
    quiz_prompt: str

    # generate_content
    lesson_content: Optional[dict]
    is_fallback: bool

    # generate_quiz
    quiz: Optional[dict]
    quiz_is_fallback: bool
