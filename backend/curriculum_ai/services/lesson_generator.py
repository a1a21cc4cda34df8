"""Lesson content generator — runs the lesson engine and reconciles lesson status.

Two ways in:
  - ``generate_lesson_content``: awaitable, raises on failure (foreground trigger)
  - ``spawn_generation``: fire-and-forget task; the outcome is only visible
    through the lesson's ``ai_processed`` / ``ai_processing_needed`` flags

Nothing here prevents two runs for the same lesson; the trigger routes call
``LessonStore.claim_generation`` first.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from curriculum_ai.config import settings
from curriculum_ai.database import SessionLocal
from curriculum_ai.lesson_engine.graph import build_graph
from curriculum_ai.services import ai_client
from curriculum_ai.services.lesson_store import LessonStore

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, float, int], Awaitable[str]]

# Strong references so running background tasks are not garbage-collected
_background_tasks: set[asyncio.Task] = set()


def _reset_status(store: LessonStore, lesson_id: str) -> None:
    try:
        store.set_status(lesson_id, ai_processed=False, ai_processing_needed=False)
    except Exception:
        logger.exception("Lesson %s: could not reset status flags", lesson_id)


async def generate_lesson_content(
    lesson_id: str,
    title: str,
    description: str,
    subject: str,
    grade_level: str,
    document_url: str,
    *,
    store: LessonStore,
    generate: Optional[GenerateFn] = None,
    force_fallback: bool = False,
) -> dict:
    """Generate, store, and mark complete the AI content for one lesson.

    Raises whatever the content stage or the store raised; in that case the
    lesson is left with ``ai_processed=False, ai_processing_needed=False``.
    """
    logger.info("Generating AI content for lesson %s", lesson_id)

    try:
        store.mark_processing(lesson_id)
    except Exception:
        logger.exception("Lesson %s: could not set processing flag", lesson_id)

    initial_state = {
        "lesson_id": lesson_id,
        "title": title,
        "description": description or "",
        "subject": subject,
        "grade_level": grade_level,
        "document_url": document_url or "",
        "force_fallback": force_fallback,
    }

    try:
        result = await build_graph().ainvoke(
            initial_state,
            config={"configurable": {"generate": generate or ai_client.generate}},
        )
        row = store.insert_content(
            lesson_id,
            result["lesson_content"],
            result["quiz"],
            is_fallback=result["is_fallback"],
            replace=settings.REGENERATION_POLICY == "replace",
        )
        store.set_status(lesson_id, ai_processed=True, ai_processing_needed=False)
    except Exception:
        logger.exception("AI lesson generation failed for lesson %s", lesson_id)
        _reset_status(store, lesson_id)
        raise

    logger.info(
        "AI content generation complete for lesson %s (fallback=%s, quiz_fallback=%s)",
        lesson_id, result["is_fallback"], result.get("quiz_is_fallback", False),
    )
    return {
        "content_id": row.id,
        "lesson": result["lesson_content"],
        "quiz": result["quiz"],
        "is_fallback": result["is_fallback"],
    }


async def _run_in_background(lesson_id: str, fields: dict, force_fallback: bool) -> None:
    """Background body: own DB session, errors only logged."""
    db = SessionLocal()
    try:
        await generate_lesson_content(
            lesson_id,
            store=LessonStore(db),
            force_fallback=force_fallback,
            **fields,
        )
    except Exception as e:
        logger.error("Background generation failed for lesson %s: %s", lesson_id, e)
    finally:
        db.close()


def spawn_generation(
    lesson_id: str,
    title: str,
    description: str,
    subject: str,
    grade_level: str,
    document_url: str,
    force_fallback: bool = False,
) -> asyncio.Task:
    """Start generation without awaiting it. Must be called from a running loop.

    Plain strings only, so no SQLAlchemy object crosses into the task.
    """
    fields = {
        "title": title,
        "description": description,
        "subject": subject,
        "grade_level": grade_level,
        "document_url": document_url,
    }
    task = asyncio.create_task(_run_in_background(lesson_id, fields, force_fallback))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def content_to_dict(row) -> dict:
    """Serialize a GeneratedContent row for API responses."""
    return {
        "id": row.id,
        "lesson_id": row.lesson_id,
        "content": json.loads(row.content_json),
        "quiz": json.loads(row.quiz_json),
        "is_fallback": row.is_fallback,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
