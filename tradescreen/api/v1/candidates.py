from fastapi import APIRouter, Depends, Query, status

from tradescreen.api.errors import screening_errors
from tradescreen.core.security import require_api_key
from tradescreen.schemas.entities import Candidate, ScreeningStatus
from tradescreen.schemas.requests import (
    CandidateCreateRequest,
    CandidateFlagRequest,
    CandidateUnflagRequest,
    ConsentUpdateRequest,
    NotesRequest,
    ScreeningStatusUpdateRequest,
)
from tradescreen.services import CandidateService, get_candidate_service

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/candidates", response_model=Candidate, status_code=status.HTTP_201_CREATED)
def create_candidate(
    payload: CandidateCreateRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.create(payload)


@router.get("/candidates", response_model=list[Candidate])
def list_candidates(
    screening_status: ScreeningStatus | None = Query(default=None),
    flagged: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    service: CandidateService = Depends(get_candidate_service),
):
    return service.list_candidates(screening_status=screening_status, flagged=flagged, limit=limit)


@router.get("/candidates/by-email", response_model=Candidate)
def get_candidate_by_email(
    email: str = Query(min_length=3),
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.get_by_email(email)


@router.get("/candidates/{candidate_id}", response_model=Candidate)
def get_candidate(candidate_id: str, service: CandidateService = Depends(get_candidate_service)):
    with screening_errors():
        return service.get(candidate_id)


@router.post("/candidates/{candidate_id}/flag", response_model=Candidate)
def flag_candidate(
    candidate_id: str,
    payload: CandidateFlagRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.flag(candidate_id, payload.reason, payload.hr_notes)


@router.post("/candidates/{candidate_id}/unflag", response_model=Candidate)
def unflag_candidate(
    candidate_id: str,
    payload: CandidateUnflagRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.unflag(candidate_id, payload.resolution)


@router.post("/candidates/{candidate_id}/notes", response_model=Candidate)
def add_candidate_notes(
    candidate_id: str,
    payload: NotesRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.add_notes(candidate_id, payload.notes)


@router.put("/candidates/{candidate_id}/consent", response_model=Candidate)
def update_consent(
    candidate_id: str,
    payload: ConsentUpdateRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.update_consent(candidate_id, payload)


@router.put("/candidates/{candidate_id}/status", response_model=Candidate)
def update_screening_status(
    candidate_id: str,
    payload: ScreeningStatusUpdateRequest,
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.set_screening_status(candidate_id, payload.screening_status, payload.notes)


@router.delete("/candidates/{candidate_id}", response_model=Candidate)
def delete_candidate(
    candidate_id: str,
    reason: str = Query(min_length=1, max_length=500),
    service: CandidateService = Depends(get_candidate_service),
):
    with screening_errors():
        return service.soft_delete(candidate_id, reason)
