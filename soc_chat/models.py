from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from .repository import ChatSession, Message


class CreateSessionRequest(BaseModel):
    title: Optional[str] = None


class SendMessageRequest(BaseModel):
    content: str


class CitationDTO(BaseModel):
    id: str
    name: str


class MessageDTO(BaseModel):
    id: str
    role: str
    content: str
    created_at: str
    citations: List[CitationDTO] = []

    @classmethod
    def from_message(cls, m: Message) -> "MessageDTO":
        return cls(
            id=m.id,
            role=m.role,
            content=m.content,
            created_at=m.timestamp.isoformat(),
            citations=[CitationDTO(id=c.id, name=c.name) for c in m.citations],
        )


class SessionSummaryDTO(BaseModel):
    id: str
    title: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_session(cls, s: ChatSession) -> "SessionSummaryDTO":
        return cls(
            id=s.id,
            title=s.title,
            created_at=s.created_at.isoformat(),
            updated_at=s.updated_at.isoformat(),
        )


class SubmissionResponse(BaseModel):
    session_id: str
    messages: List[MessageDTO]


class SessionStateDTO(BaseModel):
    session_id: str
    state: str
    composing: bool
    uploading: bool
    input_error: Optional[str] = None
    message_count: int


# Explicit exports
__all__ = [
    "CreateSessionRequest",
    "SendMessageRequest",
    "CitationDTO",
    "MessageDTO",
    "SessionSummaryDTO",
    "SubmissionResponse",
    "SessionStateDTO",
]
