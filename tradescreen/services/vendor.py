from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from tradescreen.core.config import settings
from tradescreen.core.errors import (
    ConfigurationError,
    DuplicateAssessmentError,
    ExternalFetchError,
    InsufficientDataError,
    ReferentialError,
)
from tradescreen.schemas.assessment import Assessment
from tradescreen.schemas.entities import Session
from tradescreen.schemas.requests import VendorAssessResponse
from tradescreen.schemas.transcript import TranscriptEntry, resolve_role

from .orchestrator import AssessmentOrchestrator
from .sessions import SessionService

logger = logging.getLogger(__name__)

_SPOKEN_ROLES = {"user", "bot"}


@dataclass(frozen=True)
class VendorCallRecord:
    call_id: str
    transcripts: list[TranscriptEntry] = field(default_factory=list)
    recording_url: str | None = None
    success_evaluation: bool | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None


def parse_success_evaluation(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value == "true":
            return True
        if value == "false":
            return False
    return None


def _parse_iso(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _message_time(message: dict[str, Any], base: datetime, index: int) -> datetime:
    raw_ms = message.get("time")
    if isinstance(raw_ms, (int, float)) and not isinstance(raw_ms, bool):
        return datetime.fromtimestamp(raw_ms / 1000.0, tz=timezone.utc)
    offset = message.get("secondsFromStart")
    if isinstance(offset, (int, float)) and not isinstance(offset, bool):
        return base + timedelta(seconds=float(offset))
    return base + timedelta(seconds=index)


def parse_call_payload(payload: Any, *, now: datetime | None = None) -> VendorCallRecord:
    """Map a vendor call record onto transcript entries. Malformed records are rejected."""
    if not isinstance(payload, dict):
        raise ExternalFetchError("Vendor call record is not a JSON object.")
    call_id = payload.get("id")
    if not isinstance(call_id, str) or not call_id:
        raise ExternalFetchError("Vendor call record has no id.")
    messages = payload.get("messages")
    if messages is None:
        messages = []
    if not isinstance(messages, list):
        raise ExternalFetchError(f"Vendor call {call_id} has a malformed message list.")

    started_at = _parse_iso(payload.get("startedAt"))
    base = started_at or now or datetime.now(timezone.utc)
    transcripts: list[TranscriptEntry] = []
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ExternalFetchError(f"Vendor call {call_id} has a malformed message at position {index}.")
        raw_role = message.get("role")
        if raw_role not in _SPOKEN_ROLES:
            continue
        try:
            transcripts.append(
                TranscriptEntry(
                    id=f"vendor_{index}",
                    text=message.get("message") or "",
                    role=resolve_role(raw_role) or raw_role,
                    timestamp=_message_time(message, base, index),
                    confidence=1.0,
                    is_final=True,
                )
            )
        except ValidationError as exc:
            raise ExternalFetchError(f"Vendor call {call_id} has an invalid message at position {index}.") from exc

    analysis = payload.get("analysis")
    success = parse_success_evaluation(analysis.get("successEvaluation")) if isinstance(analysis, dict) else None
    recording_url = payload.get("recordingUrl")
    return VendorCallRecord(
        call_id=call_id,
        transcripts=transcripts,
        recording_url=recording_url if isinstance(recording_url, str) and recording_url else None,
        success_evaluation=success,
        started_at=started_at,
        ended_at=_parse_iso(payload.get("endedAt")),
    )


class VapiClient:
    def __init__(
        self,
        *,
        base_url: str,
        private_key: str | None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.private_key = private_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, transport: httpx.BaseTransport | None = None) -> "VapiClient":
        return cls(
            base_url=settings.vapi_api_base_url,
            private_key=settings.vapi_private_key,
            timeout=settings.vapi_fetch_timeout_s,
            transport=transport,
        )

    def fetch_call(self, call_id: str) -> dict[str, Any]:
        if not self.private_key:
            raise ConfigurationError("VAPI_PRIVATE_KEY is not configured.")
        headers = {"Authorization": f"Bearer {self.private_key}"}
        try:
            with httpx.Client(timeout=self.timeout, headers=headers, transport=self.transport) as client:
                response = client.get(f"{self.base_url}/call/{call_id}")
        except httpx.TimeoutException as exc:
            raise ExternalFetchError(f"Vendor call {call_id} fetch timed out.") from exc
        except httpx.HTTPError as exc:
            raise ExternalFetchError(f"Vendor call {call_id} fetch failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise ExternalFetchError(f"Vendor API returned HTTP {response.status_code} for call {call_id}.")
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalFetchError(f"Vendor call {call_id} returned invalid JSON.") from exc


class VendorService:
    """Pulls the finished call from the voice vendor and scores the session once."""

    def __init__(
        self,
        sessions: SessionService,
        orchestrator: AssessmentOrchestrator,
        *,
        client_factory: Callable[[], VapiClient] = VapiClient.from_settings,
    ) -> None:
        self.sessions = sessions
        self.orchestrator = orchestrator
        self.client_factory = client_factory

    def process_webhook(self, call_id: str) -> VendorAssessResponse:
        session = self.sessions.store.get_session_by_external_id(call_id)
        if session is None:
            raise ReferentialError(f"No session is linked to vendor call {call_id}.")
        return self._assess(session.id, call_id, tolerate_insufficient=True)

    def fetch_and_assess(self, session_id: str, call_id: str) -> VendorAssessResponse:
        return self._assess(session_id, call_id, tolerate_insufficient=False)

    def _assess(self, session_id: str, call_id: str, *, tolerate_insufficient: bool) -> VendorAssessResponse:
        session = self.sessions.get(session_id)
        existing = self.orchestrator.store.get_assessment_by_session(session.id)
        if existing is not None:
            logger.info("vendor_assess_duplicate session=%s call=%s", session.id, call_id)
            return _already_assessed(session, existing)

        payload = self.client_factory().fetch_call(call_id)
        record = parse_call_payload(payload)
        try:
            finalized = self.sessions.finalize_external(
                session.id,
                record.transcripts,
                call_id=call_id,
                recording_url=record.recording_url,
                started_at=record.started_at,
                ended_at=record.ended_at,
            )
        except DuplicateAssessmentError:
            # scored by another trigger between the check above and the write
            return self._existing_response(session.id, call_id)

        response = VendorAssessResponse(
            session_id=finalized.id,
            assessment_id=None,
            overall_score=None,
            passed=None,
            external_signal=record.success_evaluation,
            transcript_count=len(record.transcripts),
        )
        if finalized.status != "completed":
            logger.info("vendor_assess_skipped session=%s status=%s", finalized.id, finalized.status)
            return response

        try:
            assessment = self.orchestrator.evaluate_session(
                finalized.id,
                external_signal=record.success_evaluation,
                trigger="vendor",
            )
        except DuplicateAssessmentError:
            return self._existing_response(finalized.id, call_id)
        except InsufficientDataError:
            if not tolerate_insufficient:
                raise
            return response

        return response.model_copy(
            update={
                "assessment_id": assessment.id,
                "overall_score": assessment.overall_score,
                "passed": assessment.passed,
            }
        )

    def _existing_response(self, session_id: str, call_id: str) -> VendorAssessResponse:
        logger.info("vendor_assess_duplicate session=%s call=%s", session_id, call_id)
        session = self.sessions.get(session_id)
        existing = self.orchestrator.store.get_assessment_by_session(session_id)
        if existing is None:
            return VendorAssessResponse(
                session_id=session_id,
                assessment_id=None,
                overall_score=None,
                passed=None,
                external_signal=None,
                transcript_count=len(session.transcripts),
                already_assessed=True,
            )
        return _already_assessed(session, existing)


def _already_assessed(session: Session, assessment: Assessment) -> VendorAssessResponse:
    return VendorAssessResponse(
        session_id=session.id,
        assessment_id=assessment.id,
        overall_score=assessment.overall_score,
        passed=assessment.passed,
        external_signal=assessment.external_signal,
        transcript_count=len(session.transcripts),
        already_assessed=True,
    )
