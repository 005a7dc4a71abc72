from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from .assessment import Assessment
from .entities import (
    ConnectionQuality,
    ContactMethod,
    ScreeningStatus,
    Session,
    SessionErrorRecord,
    TradeCategory,
)
from .transcript import TranscriptEntry


class CandidateCreateRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    first_name: str | None = Field(default=None, max_length=120)
    last_name: str | None = Field(default=None, max_length=120)
    phone: str | None = Field(default=None, max_length=40)
    position: str = Field(min_length=1, max_length=200)
    trade_category: TradeCategory = "general"
    preferred_contact_method: ContactMethod | None = None
    timezone: str | None = Field(default=None, max_length=64)
    source: str | None = Field(default=None, max_length=120)
    consent_given: bool = False


class CandidateFlagRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
    hr_notes: str | None = Field(default=None, max_length=4000)


class CandidateUnflagRequest(BaseModel):
    resolution: str = Field(min_length=1, max_length=500)


class ConsentUpdateRequest(BaseModel):
    consent_given: bool
    gdpr_consent: bool | None = None


class ScreeningStatusUpdateRequest(BaseModel):
    screening_status: ScreeningStatus
    notes: str | None = Field(default=None, max_length=4000)


class NotesRequest(BaseModel):
    notes: str = Field(min_length=1, max_length=4000)


class SessionCreateRequest(BaseModel):
    candidate_id: str = Field(min_length=1)
    external_session_id: str | None = None


class SessionStartRequest(BaseModel):
    external_session_id: str | None = None


class TranscriptAppendRequest(BaseModel):
    entries: list[TranscriptEntry] = Field(min_length=1, max_length=200)


class SessionDataUpdateRequest(BaseModel):
    connection_quality: ConnectionQuality | None = None
    recording_url: str | None = None
    error: SessionErrorRecord | None = None


class SessionEndRequest(BaseModel):
    status: Literal["failed", "abandoned"]
    reason: str = Field(min_length=1, max_length=500)
    error_code: str | None = Field(default=None, max_length=64)


class EvaluateRequest(BaseModel):
    force: bool = False
    mode: Literal["transcript", "basic"] = "transcript"


class ManualAssessmentRequest(BaseModel):
    session_id: str = Field(min_length=1)
    overall_score: int = Field(ge=0, le=100)
    passed: bool
    notes: str | None = Field(default=None, max_length=4000)


class AssessmentOverrideRequest(BaseModel):
    overall_score: int | None = Field(default=None, ge=0, le=100)
    passed: bool | None = None
    notes: str | None = Field(default=None, max_length=4000)

    @model_validator(mode="after")
    def _has_change(self) -> "AssessmentOverrideRequest":
        if self.overall_score is None and self.passed is None and not self.notes:
            raise ValueError("override must change the score, the outcome or the notes")
        return self


class PendingSweepRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)
    evaluate: bool = False


class PendingSweepResponse(BaseModel):
    total: int
    processed: int
    sessions_needing_assessment: list[str]
    failures: dict[str, str] = Field(default_factory=dict)


class VendorWebhookRequest(BaseModel):
    """End-of-call event. The call id is read from ``call_id`` or ``message.call.id``."""

    call_id: str | None = None
    message: dict[str, Any] | None = None

    @property
    def resolved_call_id(self) -> str | None:
        if self.call_id:
            return self.call_id
        call = (self.message or {}).get("call")
        if isinstance(call, dict) and isinstance(call.get("id"), str):
            return call["id"]
        return None


class VendorAssessRequest(BaseModel):
    session_id: str = Field(min_length=1)
    call_id: str = Field(min_length=1)


class VendorAssessResponse(BaseModel):
    session_id: str
    assessment_id: str | None
    overall_score: int | None
    passed: bool | None
    external_signal: bool | None
    transcript_count: int
    already_assessed: bool = False


class SessionAnalyticsSummary(BaseModel):
    total_sessions: int
    completed_sessions: int
    abandoned_sessions: int
    failed_sessions: int
    completion_rate: float
    abandonment_rate: float
    avg_duration_minutes: float
    status_counts: dict[str, int]
    daily_counts: dict[str, int]


class SessionCompleteResponse(BaseModel):
    session: Session
    assessment: Assessment | None = None
