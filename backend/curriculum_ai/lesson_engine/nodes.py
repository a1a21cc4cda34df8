"""Lesson engine graph nodes.

The model function is read from ``config["configurable"]["generate"]`` so the
pipeline can run against any ``generate(prompt, temperature, max_tokens)``.
"""

import logging
import time

from langchain_core.runnables import RunnableConfig

from curriculum_ai.config import settings
from curriculum_ai.exceptions import LessonGenerationError
from curriculum_ai.lesson_engine.extraction import (
    extract_lesson_content,
    extract_quiz,
    fallback_lesson_content,
    fallback_quiz,
)
from curriculum_ai.lesson_engine.prompts import build_lesson_prompt, build_quiz_prompt
from curriculum_ai.lesson_engine.state import LessonGenerationState

logger = logging.getLogger(__name__)


def _model(config: RunnableConfig):
    return config["configurable"]["generate"]


# ── build_prompts ─────────────────────────────────────────────────────────────

async def build_prompts(state: LessonGenerationState) -> dict:
    args = (state["title"], state.get("description", ""), state["subject"], state["grade_level"])
    return {
        "content_prompt": build_lesson_prompt(*args),
        "quiz_prompt": build_quiz_prompt(*args),
    }


# ── generate_content ──────────────────────────────────────────────────────────

async def generate_content(state: LessonGenerationState, config: RunnableConfig) -> dict:
    lesson_id = state["lesson_id"]

    if state.get("force_fallback"):
        logger.warning("Lesson %s: no AI provider, storing fallback content", lesson_id)
        return {"lesson_content": fallback_lesson_content(state["title"]), "is_fallback": True}

    start = time.time()
    try:
        raw = await _model(config)(
            state["content_prompt"],
            settings.LESSON_LLM_TEMPERATURE,
            settings.LESSON_CONTENT_MAX_TOKENS,
        )
    except Exception as e:
        logger.error("Lesson %s: content model call failed: %s", lesson_id, e)
        raise LessonGenerationError(f"Lesson content generation failed: {e}", lesson_id=lesson_id) from e

    content, used_fallback = extract_lesson_content(raw, state["title"])
    if used_fallback:
        logger.warning("Lesson %s: could not parse lesson content, using fallback", lesson_id)
    logger.info("Lesson %s: content stage done in %.1fs", lesson_id, time.time() - start)

    return {"lesson_content": content, "is_fallback": used_fallback}


# ── generate_quiz ─────────────────────────────────────────────────────────────

async def generate_quiz(state: LessonGenerationState, config: RunnableConfig) -> dict:
    lesson_id = state["lesson_id"]

    if state.get("force_fallback"):
        return {"quiz": fallback_quiz(), "quiz_is_fallback": True}

    try:
        raw = await _model(config)(
            state["quiz_prompt"],
            settings.LESSON_LLM_TEMPERATURE,
            settings.LESSON_QUIZ_MAX_TOKENS,
        )
    except Exception as e:
        # The quiz is not critical; carry on with the placeholder questions
        logger.warning("Lesson %s: quiz model call failed, using fallback quiz: %s", lesson_id, e)
        return {"quiz": fallback_quiz(), "quiz_is_fallback": True}

    quiz, used_fallback = extract_quiz(raw)
    if used_fallback:
        logger.warning("Lesson %s: could not parse quiz, using fallback quiz", lesson_id)

    return {"quiz": quiz, "quiz_is_fallback": used_fallback}
