"""Curriculum AI — FastAPI Application Entry Point."""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from curriculum_ai.config import settings
from curriculum_ai.database import init_db
from curriculum_ai.exceptions import CurriculumError
from curriculum_ai.middleware.rate_limit import limiter
from curriculum_ai.routers import auth, lessons, classrooms, assignments, chat
from curriculum_ai.services.ai_client import ai_provider_name, ai_health_check

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

init_db()

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Curriculum AI",
    description="Lesson uploads, classrooms, and AI-generated lesson content and quizzes.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(CurriculumError)
async def curriculum_error_handler(request: Request, exc: CurriculumError):
    logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code, **exc.context},
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(lessons.router)
app.include_router(classrooms.router)
app.include_router(assignments.router)
app.include_router(chat.router)


@app.on_event("startup")
async def on_startup():
    """Create the upload directory and log the AI provider."""
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    provider = ai_provider_name()
    if provider == "none":
        logger.warning(
            "AI NOT CONFIGURED: lesson content will use fallback placeholders. "
            "Set ORACLE_GENAI_COMPARTMENT_ID, OPENAI_API_KEY or ANTHROPIC_API_KEY "
            "in backend/.env and restart. Visit /api/health/ai to verify."
        )
    else:
        logger.info("AI provider: %s", provider)


@app.get("/")
def root():
    return {
        "name": "Curriculum AI API",
        "version": "1.0.0",
        "docs": "/docs",
        "ai_provider": ai_provider_name(),
    }


@app.get("/health")
def health():
    return {"status": "ok", "ai_provider": ai_provider_name()}


@app.get("/api/health/ai")
async def health_ai():
    """Live connectivity test for the configured AI provider.

    Returns:
        provider: which AI is active
        status:   "ok" | "error" | "unconfigured"
        test_reply / error: result of a tiny test call
    """
    return await ai_health_check()
