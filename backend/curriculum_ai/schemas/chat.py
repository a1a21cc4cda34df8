"""Tutor chat schemas."""

from pydantic import BaseModel


class ChatRequest(BaseModel):
    lesson_id: str
    message: str


class ChatResponse(BaseModel):
    id: str
    content: str
    timestamp: str
    is_fallback: bool = False


class MessageResponse(BaseModel):
    id: str
    role: str
    message_text: str
    created_at: str
