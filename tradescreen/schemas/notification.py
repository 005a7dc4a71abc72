from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .entities import new_id

NotificationType = Literal[
    "candidate_completed",
    "top_performer",
    "safety_failure",
    "system_alert",
    "session_abandoned",
    "technical_issue",
]
NotificationPriority = Literal["low", "medium", "high", "critical"]


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: new_id("ntf"))
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    data: dict[str, Any] | None = None
    candidate_id: str | None = None
    session_id: str | None = None
    assessment_id: str | None = None
    read: bool = False
    read_at: datetime | None = None
    acknowledged: bool = False
    acknowledged_at: datetime | None = None
    created_at: datetime
