from fastapi import APIRouter, Depends, Query, Request, status

from tradescreen.api.errors import screening_errors
from tradescreen.core.rate_limit import rate_limit
from tradescreen.core.security import require_api_key
from tradescreen.schemas.assessment import Assessment
from tradescreen.schemas.requests import (
    AssessmentOverrideRequest,
    EvaluateRequest,
    ManualAssessmentRequest,
    PendingSweepRequest,
    PendingSweepResponse,
)
from tradescreen.services import AssessmentOrchestrator, get_orchestrator

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/sessions/{session_id}/evaluate", response_model=Assessment, status_code=status.HTTP_201_CREATED)
@rate_limit()
def evaluate_session(
    request: Request,
    session_id: str,
    payload: EvaluateRequest | None = None,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    _ = request
    options = payload or EvaluateRequest()
    with screening_errors():
        return orchestrator.evaluate_session(session_id, force=options.force, mode=options.mode)


@router.get("/sessions/{session_id}/assessment", response_model=Assessment)
def get_session_assessment(session_id: str, orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)):
    with screening_errors():
        return orchestrator.get_by_session(session_id)


@router.get("/candidates/{candidate_id}/assessments", response_model=list[Assessment])
def list_candidate_assessments(candidate_id: str, orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)):
    with screening_errors():
        return orchestrator.list_by_candidate(candidate_id)


@router.get("/assessments/recent", response_model=list[Assessment])
def recent_assessments(
    limit: int = Query(default=20, ge=1, le=200),
    passed: bool | None = Query(default=None),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    return orchestrator.recent(limit=limit, passed=passed)


@router.post("/assessments/manual", response_model=Assessment, status_code=status.HTTP_201_CREATED)
def create_manual_assessment(
    payload: ManualAssessmentRequest,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    with screening_errors():
        return orchestrator.create_manual_assessment(payload)


@router.patch("/assessments/{assessment_id}", response_model=Assessment)
def override_assessment(
    assessment_id: str,
    payload: AssessmentOverrideRequest,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    with screening_errors():
        return orchestrator.override_assessment(assessment_id, payload)


@router.post("/assessments/pending-sweep", response_model=PendingSweepResponse)
def sweep_pending_assessments(
    payload: PendingSweepRequest | None = None,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    options = payload or PendingSweepRequest()
    return orchestrator.sweep_pending(limit=options.limit, evaluate=options.evaluate)
