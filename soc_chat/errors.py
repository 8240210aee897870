from __future__ import annotations


class ChatError(Exception):
    """Base class for failures local to a single chat submission."""


class ValidationError(ChatError):
    """Input rejected by the format-acceptance rule; nothing was appended."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EnrichmentError(ChatError):
    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class SessionNotFoundError(ChatError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class SessionClosedError(ChatError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"session is closed: {session_id}")
        self.session_id = session_id


__all__ = [
    "ChatError",
    "ValidationError",
    "EnrichmentError",
    "SessionNotFoundError",
    "SessionClosedError",
]
