"""Recover structured JSON objects from free-text model output.

Models do not reliably follow "return only JSON" instructions, so every
response goes through an ordered list of strategies:

  1. direct parse of the whole text
  2. the first fenced code block (``` or ```json)
  3. the widest ``{ ... }`` span

The first candidate that parses *and* has the expected shape wins. When none
does, a copy of the caller's fallback object is returned, so extraction never
raises.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from curriculum_ai.lesson_engine.state import LessonContentSchema, QuizSchema

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_BRACE_RE = re.compile(r"\{.*\}", re.DOTALL)


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


def try_direct_parse(text: str) -> Optional[Any]:
    return _loads(text.strip())


def try_fenced_block(text: str) -> Optional[Any]:
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return _loads(match.group(1).strip())


def try_brace_scan(text: str) -> Optional[Any]:
    match = _BRACE_RE.search(text)
    if not match:
        return None
    return _loads(match.group(0))


STRATEGIES: list[Callable[[str], Optional[Any]]] = [
    try_direct_parse,
    try_fenced_block,
    try_brace_scan,
]


def _has_shape(candidate: Any, schema: Optional[type[BaseModel]]) -> bool:
    if not isinstance(candidate, dict):
        return False
    if schema is None:
        return True
    try:
        schema.model_validate(candidate)
    except ValidationError:
        return False
    return True


def extract_json(
    text: Optional[str],
    fallback: dict,
    schema: Optional[type[BaseModel]] = None,
) -> tuple[dict, bool]:
    """Return ``(obj, used_fallback)`` for a raw model response.

    ``obj`` is the parsed object exactly as the model produced it; ``schema``
    only gates which candidates are accepted.
    """
    if isinstance(text, str) and text.strip():
        for strategy in STRATEGIES:
            candidate = strategy(text)
            if candidate is not None and _has_shape(candidate, schema):
                return candidate, False
            if candidate is not None:
                logger.debug("%s parsed JSON with the wrong shape", strategy.__name__)

    return copy.deepcopy(fallback), True


# ── Fallback objects ──────────────────────────────────────────────────────────

FALLBACK_QUIZ: dict = {
    "questions": [
        {
            "question": "This is a placeholder question. AI-generated questions could not be created.",
            "options": ["Option A", "Option B", "Option C", "Option D"],
            "correctAnswer": 0,
            "explanation": "This is a placeholder explanation.",
        },
        {
            "question": "Where can you find the full material for this lesson?",
            "options": [
                "In the attached lesson document",
                "Nowhere yet",
                "Only in the quiz",
                "In the key terms list",
            ],
            "correctAnswer": 0,
            "explanation": "The lesson document uploaded by your teacher contains the full material.",
        },
    ]
}


def fallback_quiz() -> dict:
    return copy.deepcopy(FALLBACK_QUIZ)


def fallback_lesson_content(title: str) -> dict:
    return {
        "title": title,
        "sections": [
            {
                "title": "Content Unavailable",
                "content": (
                    "AI-generated content for this lesson could not be created. "
                    "Please refer to the attached lesson document, or ask your teacher "
                    "to regenerate the content later."
                ),
                "keyPoints": ["This is a placeholder for AI-generated content."],
            }
        ],
        "keyTerms": [
            {
                "term": "AI Content",
                "definition": "Content that could not be generated. Please try again later.",
            }
        ],
    }


def extract_lesson_content(text: Optional[str], title: str) -> tuple[dict, bool]:
    return extract_json(text, fallback_lesson_content(title), LessonContentSchema)


def extract_quiz(text: Optional[str]) -> tuple[dict, bool]:
    return extract_json(text, FALLBACK_QUIZ, QuizSchema)
