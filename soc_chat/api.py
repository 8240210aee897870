from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, UploadFile

from .config import configure_logging, get_settings
from .errors import SessionClosedError, SessionNotFoundError, ValidationError
from .models import (
    CreateSessionRequest,
    MessageDTO,
    SendMessageRequest,
    SessionStateDTO,
    SessionSummaryDTO,
    SubmissionResponse,
)
from .repository import ChatSession
from .service import ChatService


app = FastAPI(title="SOC Chat Enrichment API", version="1.0.0")

router = APIRouter()


def get_chat_service() -> ChatService:
    return ChatService.instance()


ServiceDependency = Depends(get_chat_service)


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging(get_settings().log_level)
    ChatService.instance()


@app.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


def _submission_response(session: ChatSession) -> SubmissionResponse:
    # the last two messages are the user/assistant pair for this submission
    return SubmissionResponse(
        session_id=session.id,
        messages=[MessageDTO.from_message(m) for m in session.messages[-2:]],
    )


@router.post("/sessions", response_model=SessionSummaryDTO)
async def create_session(
    req: Optional[CreateSessionRequest] = None, service: ChatService = ServiceDependency
) -> SessionSummaryDTO:
    session = service.create_session(title=req.title if req else None)
    return SessionSummaryDTO.from_session(session)


@router.get("/sessions", response_model=List[SessionSummaryDTO])
async def list_sessions(
    limit: int = 50, offset: int = 0, service: ChatService = ServiceDependency
) -> List[SessionSummaryDTO]:
    sessions = service.repository().list_sessions(limit=limit, offset=offset)
    return [SessionSummaryDTO.from_session(s) for s in sessions]


@router.get("/sessions/{session_id}/messages", response_model=List[MessageDTO])
async def get_session_messages(
    session_id: str, service: ChatService = ServiceDependency
) -> List[MessageDTO]:
    try:
        session = service.repository().get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    return [MessageDTO.from_message(m) for m in session.messages]


@router.get("/sessions/{session_id}/state", response_model=SessionStateDTO)
async def get_session_state(
    session_id: str, service: ChatService = ServiceDependency
) -> SessionStateDTO:
    try:
        view = service.view(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    return SessionStateDTO(
        session_id=session_id,
        state=view.state.value,
        composing=view.composing,
        uploading=view.uploading,
        input_error=view.input_error,
        message_count=len(view.session.messages),
    )


@router.post("/sessions/{session_id}/messages", response_model=SubmissionResponse)
async def send_message(
    session_id: str, req: SendMessageRequest, service: ChatService = ServiceDependency
) -> SubmissionResponse:
    try:
        session = await service.submit(session_id, req.content)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    except SessionClosedError:
        raise HTTPException(status_code=409, detail="session was closed")
    return _submission_response(session)


@router.post("/sessions/{session_id}/uploads", response_model=SubmissionResponse)
async def upload_file(
    session_id: str, file: UploadFile = File(...), service: ChatService = ServiceDependency
) -> SubmissionResponse:
    # Only the file name feeds the demo scan; the content is never read.
    try:
        session = await service.upload(session_id, file.filename or "")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    except SessionClosedError:
        raise HTTPException(status_code=409, detail="session was closed")
    finally:
        await file.close()
    return _submission_response(session)


@router.post("/sessions/{session_id}/escalate", status_code=202)
async def escalate_session(session_id: str, service: ChatService = ServiceDependency) -> dict:
    try:
        await service.escalate(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")
    return {"status": "escalated"}


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, service: ChatService = ServiceDependency) -> dict:
    # Deleting a non-existent session is idempotent
    service.delete_session(session_id)
    return {"status": "ok"}


app.include_router(router)
