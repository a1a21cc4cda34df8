"""Chat router — AI tutor conversations about a lesson."""

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from curriculum_ai.config import settings
from curriculum_ai.database import get_db
from curriculum_ai.lesson_engine.prompts import TUTOR_FALLBACK_REPLY, build_tutor_prompt
from curriculum_ai.middleware.auth import get_current_user
from curriculum_ai.middleware.rate_limit import limiter
from curriculum_ai.models.lesson import Lesson
from curriculum_ai.models.message import Message
from curriculum_ai.models.user import User
from curriculum_ai.schemas.chat import ChatRequest, ChatResponse, MessageResponse
from curriculum_ai.services import ai_client
from curriculum_ai.services.access import can_view_lesson
from curriculum_ai.services.lesson_store import LessonStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

CONTENT_EXCERPT_CHARS = 1000


def _get_visible_lesson(db: Session, lesson_id: str, user: User) -> Lesson:
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    if not can_view_lesson(db, lesson, user):
        raise HTTPException(status_code=403, detail="You don't have access to this lesson")
    return lesson


def _recent_history(db: Session, user_id: str, lesson_id: str) -> list[tuple[str, str]]:
    rows = (
        db.query(Message)
        .filter(Message.user_id == user_id, Message.lesson_id == lesson_id)
        .order_by(Message.created_at.desc())
        .limit(settings.CHAT_HISTORY_LIMIT)
        .all()
    )
    return [(m.role, m.message_text) for m in reversed(rows)]


@router.post("", response_model=ChatResponse)
@limiter.limit(settings.AI_RATE_LIMIT)
async def send_message(
    request: Request,
    req: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Ask the AI tutor a question about a lesson.

    Falls back to a canned reply when no provider is configured, when
    USE_AI_FALLBACK is set, or when the model call fails.
    """
    message = req.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    lesson = _get_visible_lesson(db, req.lesson_id, current_user)
    history = _recent_history(db, current_user.id, lesson.id)

    db.add(Message(
        id=str(uuid.uuid4()),
        user_id=current_user.id,
        lesson_id=lesson.id,
        role="student",
        message_text=message,
        created_at=datetime.now(timezone.utc),
    ))
    db.commit()

    content_row = LessonStore(db).latest_content(lesson.id)
    excerpt = content_row.content_json[:CONTENT_EXCERPT_CHARS] if content_row else ""

    reply = None
    if not settings.USE_AI_FALLBACK:
        prompt = build_tutor_prompt(
            lesson.title,
            lesson.description or "",
            lesson.subject,
            lesson.grade_level,
            message,
            history,
            content_excerpt=excerpt,
        )
        try:
            reply = await ai_client.generate(prompt, temperature=0.7, max_tokens=settings.CHAT_MAX_TOKENS)
        except ai_client.AINotConfiguredError:
            logger.info("No AI provider configured; using fallback tutor reply")
        except Exception as e:
            logger.error("Tutor reply failed for lesson %s: %s", lesson.id, e)

    is_fallback = not reply
    if is_fallback:
        reply = TUTOR_FALLBACK_REPLY.format(title=lesson.title)

    ai_message = Message(
        id=str(uuid.uuid4()),
        user_id=current_user.id,
        lesson_id=lesson.id,
        role="ai",
        message_text=reply,
        created_at=datetime.now(timezone.utc),
    )
    db.add(ai_message)
    db.commit()
    db.refresh(ai_message)

    return ChatResponse(
        id=ai_message.id,
        content=reply,
        timestamp=ai_message.created_at.isoformat(),
        is_fallback=is_fallback,
    )


@router.get("/{lesson_id}/messages", response_model=list[MessageResponse])
def list_messages(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The current user's conversation for a lesson, oldest first."""
    _get_visible_lesson(db, lesson_id, current_user)
    rows = (
        db.query(Message)
        .filter(Message.user_id == current_user.id, Message.lesson_id == lesson_id)
        .order_by(Message.created_at.asc())
        .all()
    )
    return [
        MessageResponse(
            id=m.id,
            role=m.role,
            message_text=m.message_text,
            created_at=m.created_at.isoformat(),
        )
        for m in rows
    ]
