from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status

from tradescreen.api.errors import screening_errors
from tradescreen.core.security import require_api_key
from tradescreen.schemas.entities import Session, SessionStatus, TradeCategory
from tradescreen.schemas.requests import (
    NotesRequest,
    SessionAnalyticsSummary,
    SessionCompleteResponse,
    SessionCreateRequest,
    SessionDataUpdateRequest,
    SessionEndRequest,
    SessionStartRequest,
    TranscriptAppendRequest,
)
from tradescreen.services import SessionService, get_session_service

router = APIRouter(dependencies=[Depends(require_api_key)])


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@router.post("/sessions", response_model=Session, status_code=status.HTTP_201_CREATED)
def create_session(payload: SessionCreateRequest, service: SessionService = Depends(get_session_service)):
    with screening_errors():
        return service.create(payload.candidate_id, payload.external_session_id)


@router.get("/sessions", response_model=list[Session])
def list_sessions(
    session_status: SessionStatus | None = Query(default=None, alias="status"),
    candidate_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    service: SessionService = Depends(get_session_service),
):
    return service.list_sessions(status=session_status, candidate_id=candidate_id, limit=limit)


@router.get("/sessions/analytics", response_model=SessionAnalyticsSummary)
def session_analytics(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    trade_category: TradeCategory | None = Query(default=None),
    service: SessionService = Depends(get_session_service),
):
    return service.analytics(
        date_from=_as_utc(date_from),
        date_to=_as_utc(date_to),
        trade_category=trade_category,
    )


@router.get("/sessions/{session_id}", response_model=Session)
def get_session(session_id: str, service: SessionService = Depends(get_session_service)):
    with screening_errors():
        return service.get(session_id)


@router.post("/sessions/{session_id}/start", response_model=Session)
def start_session(
    session_id: str,
    payload: SessionStartRequest | None = None,
    service: SessionService = Depends(get_session_service),
):
    with screening_errors():
        return service.start(session_id, payload.external_session_id if payload else None)


@router.post("/sessions/{session_id}/transcripts", response_model=Session)
def append_transcripts(
    session_id: str,
    payload: TranscriptAppendRequest,
    service: SessionService = Depends(get_session_service),
):
    with screening_errors():
        return service.append_transcripts(session_id, payload.entries)


@router.patch("/sessions/{session_id}", response_model=Session)
def update_session_data(
    session_id: str,
    payload: SessionDataUpdateRequest,
    service: SessionService = Depends(get_session_service),
):
    with screening_errors():
        return service.update_data(session_id, payload)


@router.post("/sessions/{session_id}/complete", response_model=SessionCompleteResponse)
def complete_session(session_id: str, service: SessionService = Depends(get_session_service)):
    with screening_errors():
        session, assessment = service.complete(session_id)
        return SessionCompleteResponse(session=session, assessment=assessment)


@router.post("/sessions/{session_id}/end", response_model=Session)
def end_session(
    session_id: str,
    payload: SessionEndRequest,
    service: SessionService = Depends(get_session_service),
):
    with screening_errors():
        return service.end(session_id, payload.status, payload.reason, payload.error_code)


@router.post("/sessions/{session_id}/notes", response_model=Session)
def add_session_notes(
    session_id: str,
    payload: NotesRequest,
    service: SessionService = Depends(get_session_service),
):
    with screening_errors():
        return service.add_hr_notes(session_id, payload.notes)
