from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .transcript import TranscriptEntry

TradeCategory = Literal[
    "construction",
    "electrical",
    "plumbing",
    "welding",
    "manufacturing",
    "maintenance",
    "general",
]
ScreeningStatus = Literal["invited", "in_progress", "completed", "passed", "failed", "pending_review"]
SessionStatus = Literal["created", "active", "completed", "failed", "abandoned"]
ContactMethod = Literal["email", "phone", "sms"]

TERMINAL_SESSION_STATUSES: frozenset[str] = frozenset({"completed", "failed", "abandoned"})


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class Candidate(BaseModel):
    id: str = Field(default_factory=lambda: new_id("cand"))
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    position: str
    trade_category: TradeCategory = "general"
    screening_status: ScreeningStatus = "invited"
    invited_at: datetime | None = None
    last_contact_at: datetime | None = None
    preferred_contact_method: ContactMethod | None = None
    timezone: str | None = None
    source: str | None = None
    flagged: bool = False
    flag_reason: str | None = None
    hr_notes: str | None = None
    consent_given: bool = False
    consent_timestamp: datetime | None = None
    gdpr_consent: bool | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if "@" not in normalized:
            raise ValueError("email must contain '@'")
        return normalized

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email


class ConnectionQuality(BaseModel):
    latency: float = Field(ge=0.0)
    audio_quality: str
    connection_stability: float = Field(ge=0.0, le=1.0)
    disconnect_count: int = Field(default=0, ge=0)


class SessionErrorRecord(BaseModel):
    code: str
    message: str
    timestamp: datetime
    details: dict[str, Any] | None = None


class Session(BaseModel):
    id: str = Field(default_factory=lambda: new_id("sess"))
    candidate_id: str
    external_session_id: str | None = None
    status: SessionStatus = "created"
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_seconds: float | None = None
    transcripts: list[TranscriptEntry] = Field(default_factory=list)
    recording_url: str | None = None
    connection_quality: ConnectionQuality | None = None
    errors: list[SessionErrorRecord] = Field(default_factory=list)
    hr_monitored: bool = False
    hr_notes: str | None = None
    created_at: datetime

    @model_validator(mode="after")
    def _check_timing(self) -> "Session":
        if self.status in TERMINAL_SESSION_STATUSES and self.end_time is None:
            raise ValueError("terminal sessions must have an end time")
        has_both = self.start_time is not None and self.end_time is not None
        if (self.duration_seconds is not None) != has_both:
            raise ValueError("duration is defined only when both start and end time are set")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SESSION_STATUSES
