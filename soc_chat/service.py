from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from .classifier import InputKind, check_input_format, classify
from .config import Settings, get_settings
from .enrichment import DemoEnrichmentService, EnrichmentService, enrich_with_retry
from .errors import EnrichmentError, SessionClosedError, ValidationError
from .fingerprint import synthesize_fingerprint
from .formatter import format_degraded, format_verdict
from .repository import (
    ChatSession,
    ConversationRepository,
    InMemoryConversationRepository,
    Message,
)
from .responder import Responder, build_responder


logger = logging.getLogger(__name__)

EscalationHook = Callable[[ChatSession], Any]

EMPTY_INPUT_MESSAGE = "Message cannot be empty"
TITLE_LENGTH = 60


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ENRICHING = "enriching"
    COMPOSING = "composing"
    UPLOADING = "uploading"


@dataclass(frozen=True)
class SessionView:
    """Read-only projection of a session and its submission state."""

    session: ChatSession
    state: SubmissionState
    input_error: Optional[str] = None

    @property
    def composing(self) -> bool:
        return self.state in (SubmissionState.ENRICHING, SubmissionState.COMPOSING)

    @property
    def uploading(self) -> bool:
        return self.state is SubmissionState.UPLOADING


class SessionMutator:
    """Sole writer of one session's message sequence.

    Submissions are serialized by a per-session lock, so the user message and
    the assistant message produced for it always land as an adjacent pair.
    """

    def __init__(
        self,
        session_id: str,
        repository: ConversationRepository,
        enrichment: EnrichmentService,
        responder: Responder,
        settings: Settings,
        escalation_hook: Optional[EscalationHook] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        self.session_id = session_id
        self._repo = repository
        self._enrichment = enrichment
        self._responder = responder
        self._settings = settings
        self._escalation_hook = escalation_hook
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()
        self._state = SubmissionState.IDLE
        self._input_error: Optional[str] = None
        self._inflight: Optional[asyncio.Future] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def view(self) -> SessionView:
        return SessionView(
            session=self._repo.get_session(self.session_id),
            state=self._state,
            input_error=self._input_error,
        )

    def _append(self, *messages: Message) -> ChatSession:
        session = self._repo.get_session(self.session_id).append(*messages)
        self._repo.save_session(session)
        return session

    def _validate(self, text: str) -> str:
        value = text.strip()
        if not value:
            self._input_error = None
            raise ValidationError(EMPTY_INPUT_MESSAGE)
        error = check_input_format(
            value,
            min_length=self._settings.question_min_length,
            strict_ipv4=self._settings.strict_ipv4,
        )
        self._input_error = error
        if error:
            logger.info("Rejected submission for session %s: %r", self.session_id, value)
            raise ValidationError(error)
        return value

    async def _lookup(self, value: str, kind: InputKind, subject: Optional[str] = None) -> str:
        try:
            result = await enrich_with_retry(
                self._enrichment,
                value,
                kind,
                attempts=self._settings.enrichment_max_attempts,
                timeout=self._settings.enrichment_timeout_s,
                backoff=self._settings.enrichment_backoff_s,
                sleep=self._sleep,
            )
        except EnrichmentError as e:
            logger.error("Enrichment failed for session %s: %s", self.session_id, e)
            return format_degraded(subject or value)
        return format_verdict(kind, result, subject=subject)

    async def _run(self, work: Awaitable[ChatSession]) -> ChatSession:
        async with self._lock:
            if self._closed:
                if inspect.iscoroutine(work):
                    work.close()
                raise SessionClosedError(self.session_id)
            task = asyncio.ensure_future(work)
            self._inflight = task
            try:
                return await task
            except asyncio.CancelledError:
                if task.cancelled() and self._closed:
                    logger.info("Discarded in-flight submission for closed session %s", self.session_id)
                    raise SessionClosedError(self.session_id) from None
                raise
            finally:
                self._inflight = None
                self._state = SubmissionState.IDLE

    async def submit(self, text: str) -> ChatSession:
        """Validate, classify and answer one piece of analyst input.

        Raises ValidationError (nothing appended) when the input is empty or
        too short to be a question and is not an IP, URL or hash.
        """
        if self._closed:
            raise SessionClosedError(self.session_id)
        value = self._validate(text)
        return await self._run(self._answer(value))

    async def _answer(self, value: str) -> ChatSession:
        self._state = SubmissionState.VALIDATING
        classified = classify(value, strict_ipv4=self._settings.strict_ipv4)
        logger.info("Session %s: input classified as %s", self.session_id, classified.kind.value)

        if classified.kind.is_enrichable:
            self._state = SubmissionState.ENRICHING
            annotation = await self._lookup(classified.raw_text, classified.kind)
            session = self._append(
                Message.create("user", value),
                Message.create("assistant", annotation),
            )
        else:
            session = self._append(Message.create("user", value))
            self._state = SubmissionState.COMPOSING
            try:
                reply = await self._responder.reply(session, value)
            except Exception:
                logger.exception("Responder failed for session %s", self.session_id)
                reply = "Sorry, I couldn't generate a reply right now. Please try again."
            session = self._append(Message.create("assistant", reply))

        self._repo.update_session_title_if_empty(self.session_id, value[:TITLE_LENGTH])
        return self._repo.get_session(self.session_id)

    async def upload(self, file_name: str) -> ChatSession:
        """Run the demo lookup for an uploaded file, keyed by its name only."""
        if self._closed:
            raise SessionClosedError(self.session_id)
        if not file_name:
            raise ValidationError("Uploaded file has no name")
        return await self._run(self._scan_upload(file_name))

    async def _scan_upload(self, file_name: str) -> ChatSession:
        self._state = SubmissionState.UPLOADING
        fingerprint = synthesize_fingerprint(file_name)
        logger.info("Session %s: scanning upload %s as %s", self.session_id, file_name, fingerprint)
        annotation = await self._lookup(fingerprint, InputKind.HASH, subject=f"File: {file_name}")
        self._append(
            Message.create("user", f"(File uploaded) {file_name}"),
            Message.create("assistant", annotation),
        )
        self._repo.update_session_title_if_empty(self.session_id, file_name[:TITLE_LENGTH])
        return self._repo.get_session(self.session_id)

    async def escalate(self) -> None:
        session = self._repo.get_session(self.session_id)
        logger.warning("Session %s escalated to a human analyst", self.session_id)
        if self._escalation_hook is None:
            return
        outcome = self._escalation_hook(session)
        if inspect.isawaitable(outcome):
            await outcome

    def close(self) -> None:
        """Reject further submissions and discard any in-flight one."""
        self._closed = True
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()


class ChatService:
    """Singleton-style service holding the session store and one mutator per session."""

    _instance: Optional["ChatService"] = None

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[ConversationRepository] = None,
        enrichment: Optional[EnrichmentService] = None,
        responder: Optional[Responder] = None,
        escalation_hook: Optional[EscalationHook] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repo = repository or InMemoryConversationRepository()
        self._enrichment = enrichment or DemoEnrichmentService(
            latency=self._settings.enrichment_latency_ms / 1000, sleep=sleep
        )
        self._responder = responder or build_responder(
            self._settings, self._enrichment, sleep=sleep
        )
        self._escalation_hook = escalation_hook
        self._sleep = sleep
        self._mutators: Dict[str, SessionMutator] = {}

    @classmethod
    def instance(cls) -> "ChatService":
        if cls._instance is None:
            cls._instance = ChatService()
        return cls._instance

    def repository(self) -> ConversationRepository:
        return self._repo

    def settings(self) -> Settings:
        return self._settings

    def create_session(self, title: Optional[str] = None) -> ChatSession:
        session = self._repo.create_session(title=title)
        logger.info("Created session %s", session.id)
        return session

    def mutator(self, session_id: str) -> SessionMutator:
        mutator = self._mutators.get(session_id)
        if mutator is None:
            # raises SessionNotFoundError for unknown ids
            self._repo.get_session(session_id)
            mutator = SessionMutator(
                session_id,
                self._repo,
                self._enrichment,
                self._responder,
                self._settings,
                escalation_hook=self._escalation_hook,
                sleep=self._sleep,
            )
            self._mutators[session_id] = mutator
        return mutator

    def view(self, session_id: str) -> SessionView:
        return self.mutator(session_id).view()

    async def submit(self, session_id: str, text: str) -> ChatSession:
        return await self.mutator(session_id).submit(text)

    async def upload(self, session_id: str, file_name: str) -> ChatSession:
        return await self.mutator(session_id).upload(file_name)

    async def escalate(self, session_id: str) -> None:
        await self.mutator(session_id).escalate()

    def delete_session(self, session_id: str) -> None:
        mutator = self._mutators.pop(session_id, None)
        if mutator is not None:
            mutator.close()
        self._repo.delete_session(session_id)
        logger.info("Deleted session %s", session_id)


__all__ = [
    "SubmissionState",
    "SessionView",
    "SessionMutator",
    "ChatService",
]
