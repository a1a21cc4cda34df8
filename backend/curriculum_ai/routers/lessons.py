"""Lessons router — document upload, lesson listing, and AI content generation."""

import logging
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from curriculum_ai.config import settings
from curriculum_ai.database import get_db
from curriculum_ai.exceptions import GenerationInProgressError
from curriculum_ai.middleware.auth import get_current_user, require_teacher
from curriculum_ai.middleware.rate_limit import limiter
from curriculum_ai.models.assignment import Assignment
from curriculum_ai.models.classroom import Classroom, ClassroomLesson
from curriculum_ai.models.lesson import Lesson
from curriculum_ai.models.user import User
from curriculum_ai.schemas.lesson import (
    GenerateStartedResponse,
    LessonListResponse,
    LessonResponse,
    LessonUploadResponse,
)
from curriculum_ai.services import ai_client, lesson_generator
from curriculum_ai.services.access import can_view_lesson, joined_classroom_ids
from curriculum_ai.services.lesson_store import LessonStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


def _lesson_to_response(lesson: Lesson) -> LessonResponse:
    return LessonResponse(
        id=lesson.id,
        teacher_id=lesson.teacher_id,
        title=lesson.title,
        description=lesson.description,
        subject=lesson.subject,
        grade_level=lesson.grade_level,
        file_url=lesson.file_url,
        ai_processed=bool(lesson.ai_processed),
        ai_processing_needed=bool(lesson.ai_processing_needed),
        created_at=lesson.created_at.isoformat(),
    )


def _stale_after() -> timedelta:
    return timedelta(minutes=settings.AI_PROCESSING_STALE_MINUTES)


def _get_visible_lesson(db: Session, lesson_id: str, user: User) -> Lesson:
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    if not can_view_lesson(db, lesson, user):
        raise HTTPException(status_code=403, detail="You don't have access to this lesson")
    return lesson


def _get_owned_lesson(db: Session, lesson_id: str, teacher: User) -> Lesson:
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if not lesson or lesson.teacher_id != teacher.id:
        raise HTTPException(status_code=404, detail="Lesson not found or you don't have permission")
    return lesson


def _spawn_for(lesson: Lesson) -> bool:
    """Start background generation for a lesson. Returns True when forced to fallback."""
    force_fallback = not ai_client.ai_configured()
    lesson_generator.spawn_generation(
        lesson.id,
        lesson.title,
        lesson.description or "",
        lesson.subject,
        lesson.grade_level,
        lesson.file_url or "",
        force_fallback=force_fallback,
    )
    return force_fallback


@router.post("", response_model=LessonUploadResponse, status_code=201)
async def upload_lesson(
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(...),
    subject: str = Form(...),
    grade_level: str = Form(...),
    classroom_id: Optional[str] = Form(None),
    generate_ai: bool = Form(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Upload a lesson PDF (teacher only).

    Optionally assigns it to one of the teacher's classrooms and starts AI
    content generation in the background.
    """
    if not (title.strip() and description.strip() and subject.strip() and grade_level.strip()):
        raise HTTPException(status_code=400, detail="Missing required fields")

    ext = (file.filename or "").rsplit(".", 1)[-1].lower() if file.filename and "." in file.filename else ""
    if ext != "pdf":
        raise HTTPException(status_code=400, detail="Only PDF documents are supported")

    classroom = None
    if classroom_id:
        classroom = db.query(Classroom).filter(Classroom.id == classroom_id).first()
        if not classroom or classroom.teacher_id != current_user.id:
            raise HTTPException(
                status_code=403,
                detail="You don't have permission to assign lessons to this classroom",
            )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB)",
        )

    lesson_id = str(uuid.uuid4())
    upload_dir = Path(settings.UPLOAD_DIR) / current_user.id
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{lesson_id}.pdf"
    file_path.write_bytes(content)

    lesson = Lesson(
        id=lesson_id,
        teacher_id=current_user.id,
        title=title.strip(),
        description=description.strip(),
        subject=subject.strip(),
        grade_level=grade_level.strip(),
        file_path=str(file_path),
        file_url=f"/api/lessons/{lesson_id}/document",
        ai_processed=False,
        ai_processing_needed=False,
    )
    db.add(lesson)

    assignment_id = None
    if classroom:
        assignment = Assignment(
            id=str(uuid.uuid4()),
            title=lesson.title,
            description=lesson.description,
            classroom_id=classroom.id,
            lesson_id=lesson_id,
            teacher_id=current_user.id,
        )
        db.add(assignment)
        assignment_id = assignment.id

    try:
        db.commit()
    except Exception as e:
        db.rollback()
        # No row points at the file any more
        file_path.unlink(missing_ok=True)
        logger.error("Failed to save lesson %s: %s", lesson_id, e)
        raise HTTPException(status_code=500, detail="Failed to save lesson")
    db.refresh(lesson)
    logger.info("Teacher %s uploaded lesson %s", current_user.id, lesson.id)

    ai_processing = False
    if generate_ai and LessonStore(db).claim_generation(lesson.id, _stale_after()):
        _spawn_for(lesson)
        ai_processing = True
        db.refresh(lesson)

    return LessonUploadResponse(
        message=(
            "Lesson uploaded and assigned to classroom successfully"
            if classroom else "Lesson uploaded successfully"
        ),
        lesson=_lesson_to_response(lesson),
        assignment_id=assignment_id,
        ai_processing=ai_processing,
    )


@router.get("", response_model=LessonListResponse)
def list_lessons(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Teachers get their own lessons; students get lessons shared with their classrooms."""
    if current_user.role == "teacher":
        lessons = (
            db.query(Lesson)
            .filter(Lesson.teacher_id == current_user.id)
            .order_by(Lesson.created_at.desc())
            .all()
        )
    else:
        classroom_ids = joined_classroom_ids(db, current_user.id)
        if not classroom_ids:
            lessons = []
        else:
            shared_ids = {
                link.lesson_id for link in
                db.query(ClassroomLesson).filter(
                    ClassroomLesson.classroom_id.in_(classroom_ids),
                    ClassroomLesson.visible.is_(True),
                ).all()
            }
            shared_ids |= {
                a.lesson_id for a in
                db.query(Assignment).filter(
                    Assignment.classroom_id.in_(classroom_ids),
                    Assignment.lesson_id.isnot(None),
                ).all()
            }
            lessons = (
                db.query(Lesson)
                .filter(Lesson.id.in_(shared_ids))
                .order_by(Lesson.created_at.desc())
                .all()
            ) if shared_ids else []

    return LessonListResponse(
        lessons=[_lesson_to_response(l) for l in lessons],
        total=len(lessons),
    )


@router.get("/{lesson_id}", response_model=LessonResponse)
def get_lesson(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Lesson metadata, including the AI processing flags the UI polls."""
    return _lesson_to_response(_get_visible_lesson(db, lesson_id, current_user))


@router.get("/{lesson_id}/document")
def download_document(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lesson = _get_visible_lesson(db, lesson_id, current_user)
    if not lesson.file_path or not Path(lesson.file_path).exists():
        raise HTTPException(status_code=404, detail="File not found on disk")
    return FileResponse(
        path=lesson.file_path,
        filename=f"{lesson.title}.pdf",
        media_type="application/pdf",
    )


@router.delete("/{lesson_id}", status_code=204)
def delete_lesson(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    lesson = _get_owned_lesson(db, lesson_id, current_user)

    if lesson.file_path:
        try:
            Path(lesson.file_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", lesson.file_path, e)

    # Assignments outlive the lesson they pointed at
    db.query(Assignment).filter(Assignment.lesson_id == lesson.id).update({Assignment.lesson_id: None})
    db.delete(lesson)
    db.commit()


@router.get("/{lesson_id}/ai-content")
def get_ai_content(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Latest AI-generated content for a lesson, or 404 with the current status flags."""
    lesson = _get_visible_lesson(db, lesson_id, current_user)

    row = LessonStore(db).latest_content(lesson_id)
    if row is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "AI content not generated yet",
                "aiProcessed": bool(lesson.ai_processed),
                "aiProcessingNeeded": bool(lesson.ai_processing_needed),
            },
        )

    return {
        "lesson": _lesson_to_response(lesson).model_dump(),
        "aiContent": lesson_generator.content_to_dict(row),
    }


@router.post("/{lesson_id}/generate-ai", response_model=GenerateStartedResponse)
@limiter.limit(settings.AI_RATE_LIMIT)
async def generate_ai(
    request: Request,
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Start AI content generation in the background.

    Returns immediately; poll GET /api/lessons/{id} for ai_processed /
    ai_processing_needed to follow progress.
    """
    lesson = _get_owned_lesson(db, lesson_id, current_user)
    store = LessonStore(db)

    existing = store.latest_content(lesson_id)
    if existing is not None:
        return GenerateStartedResponse(
            message="Content already exists for this lesson",
            already_exists=True,
            is_fallback=existing.is_fallback,
        )

    if not store.claim_generation(lesson_id, _stale_after()):
        raise GenerationInProgressError(lesson_id)

    using_fallback = _spawn_for(lesson)
    return GenerateStartedResponse(
        message="Fallback content generation started" if using_fallback else "AI content generation started",
        processing=True,
        using_fallback=using_fallback,
    )


@router.post("/{lesson_id}/force-generate-ai")
@limiter.limit(settings.AI_RATE_LIMIT)
async def force_generate_ai(
    request: Request,
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_teacher),
):
    """Regenerate AI content and wait for the result."""
    lesson = _get_owned_lesson(db, lesson_id, current_user)
    store = LessonStore(db)

    if not store.claim_generation(lesson_id, _stale_after()):
        raise GenerationInProgressError(lesson_id)

    logger.info("Force generating AI content for lesson %s", lesson_id)
    try:
        result = await lesson_generator.generate_lesson_content(
            lesson.id,
            lesson.title,
            lesson.description or "",
            lesson.subject,
            lesson.grade_level,
            lesson.file_url or "",
            store=store,
            force_fallback=not ai_client.ai_configured(),
        )
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to generate AI content", "details": str(e) or "Unknown error"},
        )

    return {
        "message": "AI content generation completed successfully",
        "success": True,
        "result": result,
    }
