from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SpeakerRole = Literal["candidate", "interviewer"]

# Transport and vendor role names mapped onto the internal speaker roles.
_ROLE_ALIASES: dict[str, SpeakerRole] = {
    "candidate": "candidate",
    "user": "candidate",
    "customer": "candidate",
    "interviewer": "interviewer",
    "assistant": "interviewer",
    "bot": "interviewer",
}


def _new_entry_id() -> str:
    return uuid.uuid4().hex


def resolve_role(raw: str) -> SpeakerRole | None:
    return _ROLE_ALIASES.get((raw or "").strip().lower())


class TranscriptEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_entry_id)
    text: str = ""
    role: SpeakerRole
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    is_final: bool = Field(alias="isFinal")

    @field_validator("text", mode="before")
    @classmethod
    def _missing_text_is_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> str:
        role = resolve_role(str(value or ""))
        if role is None:
            raise ValueError("role must be one of: candidate, interviewer, user, assistant, bot")
        return role

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
