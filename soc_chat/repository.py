from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .errors import SessionNotFoundError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DocumentRef:
    id: str
    name: str


@dataclass(frozen=True)
class Message:
    id: str
    role: str  # 'user' | 'assistant'
    content: str
    timestamp: datetime
    citations: Tuple[DocumentRef, ...] = ()

    @classmethod
    def create(
        cls, role: str, content: str, citations: Tuple[DocumentRef, ...] = ()
    ) -> "Message":
        if role not in ("user", "assistant"):
            raise ValueError(f"unsupported message role: {role!r}")
        return cls(
            id=str(uuid.uuid4()),
            role=role,
            content=content,
            timestamp=_utcnow(),
            citations=tuple(citations),
        )


@dataclass(frozen=True)
class ChatSession:
    id: str
    title: Optional[str]
    messages: Tuple[Message, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def append(self, *messages: Message) -> "ChatSession":
        """Return a new session with ``messages`` added after the existing ones."""
        if not messages:
            return self
        return replace(
            self,
            messages=self.messages + tuple(messages),
            updated_at=messages[-1].timestamp,
        )


class ConversationRepository:
    def create_session(self, title: Optional[str] = None, session_id: Optional[str] = None) -> ChatSession:
        raise NotImplementedError

    def session_exists(self, session_id: str) -> bool:
        raise NotImplementedError

    def get_session(self, session_id: str) -> ChatSession:
        raise NotImplementedError

    def save_session(self, session: ChatSession) -> None:
        raise NotImplementedError

    def update_session_title_if_empty(self, session_id: str, title: str) -> None:
        raise NotImplementedError

    def list_sessions(self, limit: int = 50, offset: int = 0) -> List[ChatSession]:
        raise NotImplementedError

    def delete_session(self, session_id: str) -> None:
        raise NotImplementedError


class InMemoryConversationRepository(ConversationRepository):
    """Process-lifetime session store; history is gone on restart."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def create_session(self, title: Optional[str] = None, session_id: Optional[str] = None) -> ChatSession:
        session = ChatSession(id=session_id or str(uuid.uuid4()), title=title)
        with self._lock:
            self._sessions[session.id] = session
        return session

    def session_exists(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get_session(self, session_id: str) -> ChatSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def save_session(self, session: ChatSession) -> None:
        with self._lock:
            if session.id not in self._sessions:
                raise SessionNotFoundError(session.id)
            self._sessions[session.id] = session

    def update_session_title_if_empty(self, session_id: str, title: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            if not session.title:
                self._sessions[session_id] = replace(session, title=title)

    def list_sessions(self, limit: int = 50, offset: int = 0) -> List[ChatSession]:
        with self._lock:
            sessions = sorted(
                self._sessions.values(), key=lambda s: s.updated_at, reverse=True
            )
        return sessions[offset : offset + limit]

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


__all__ = [
    "DocumentRef",
    "Message",
    "ChatSession",
    "ConversationRepository",
    "InMemoryConversationRepository",
]
